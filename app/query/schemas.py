# FILE: app/query/schemas.py
"""Request/result models for repository questions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.ratelimit.limiter import RateLimitInfo


class ConversationMessage(BaseModel):
    """One prior turn, passed through to the prompt unchanged."""
    role: str
    content: str


class QueryRequest(BaseModel):
    """Body of POST /api/gemini."""
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, description="Repository owner")
    repo: str = Field(..., min_length=1, description="Repository name")
    query: str = Field(..., description="Natural-language question")
    file_path: Optional[str] = Field(None, alias="filePath", description="File currently open in the viewer")
    fetch_only_current_file: bool = Field(
        False, alias="fetchOnlyCurrentFile", description="Answer from file_path alone"
    )
    history: List[ConversationMessage] = Field(default_factory=list)

    @property
    def repo_key(self) -> str:
        return f"{self.username}/{self.repo}"

    @property
    def single_file(self) -> bool:
        return bool(self.file_path) and self.fetch_only_current_file


@dataclass
class ContextStats:
    files: int = 0
    total_chars: int = 0


@dataclass
class PromptContext:
    tree: str
    content: str
    stats: ContextStats = field(default_factory=ContextStats)


@dataclass
class QueryOutcome:
    """Result of one pipeline run, already mapped to an HTTP status."""
    success: bool
    status_code: int = 200
    response: Optional[str] = None
    error: Optional[str] = None
    rate_limited: bool = False
    rate_limit: Optional[RateLimitInfo] = None

    def to_body(self) -> Dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "response": self.response,
                "rateLimit": self.rate_limit.to_dict() if self.rate_limit else None,
            }
        body: Dict[str, Any] = {"success": False, "error": self.error}
        if self.rate_limited:
            body["rateLimited"] = True
        if self.rate_limit is not None:
            body["rateLimit"] = self.rate_limit.to_dict()
        return body
