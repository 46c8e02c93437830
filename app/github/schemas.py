# FILE: app/github/schemas.py
"""Repository data shapes returned by the fetcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional

NodeType = Literal["file", "directory"]


@dataclass
class FileNode:
    """
    One entry of a repository listing.

    Only directory nodes carry children; child order matches the order of
    the hosting API listing. ``children`` stays None for directories that
    were not expanded (depth cap).
    """
    name: str
    path: str
    type: NodeType
    content: Optional[str] = None
    children: Optional[List["FileNode"]] = None
    size: Optional[int] = None

    @property
    def is_directory(self) -> bool:
        return self.type == "directory"

    @classmethod
    def from_listing(cls, item: Dict[str, Any]) -> "FileNode":
        return cls(
            name=item["name"],
            path=item["path"],
            type="directory" if item.get("type") == "dir" else "file",
            size=item.get("size"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "path": self.path, "type": self.type}
        if self.content is not None:
            data["content"] = self.content
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def iter_files(nodes: List[FileNode]) -> Iterator[FileNode]:
    """Depth-first walk over file nodes, in listing order."""
    for node in nodes:
        if node.is_directory:
            if node.children:
                yield from iter_files(node.children)
        else:
            yield node


@dataclass
class RepoSummary:
    """Repository metadata plus its (depth-capped) file tree."""
    name: str
    owner: str
    description: Optional[str] = None
    stars: int = 0
    forks: int = 0
    language: Optional[str] = None
    files: List[FileNode] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "owner": self.owner,
            "description": self.description,
            "stars": self.stars,
            "forks": self.forks,
            "language": self.language,
            "files": [f.to_dict() for f in self.files],
        }
