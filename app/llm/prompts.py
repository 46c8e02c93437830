# FILE: app/llm/prompts.py
"""
Prompt builders for repository questions.

The query is embedded with a ``USER QUERY:`` marker in every shape. Three
shapes:
- file prompt:    one file's content
- repo prompt:    conversation history + directory tree + file contents
- generic prompt: repository name only (no context could be assembled)
"""

from __future__ import annotations

from typing import Iterable, Mapping


def user_query_prefix(query: str) -> str:
    return f"USER QUERY: {query}\n\n"


def build_file_prompt(query: str, file_path: str, file_content: str) -> str:
    return (
        f"{user_query_prefix(query)}"
        "You are a helpful assistant that can answer questions about the given code file.\n\n"
        f"FILE: {file_path}\n\n"
        f"{file_content}\n\n"
        "Provide a detailed, technical response that directly addresses the user's query "
        "about this specific file."
    )


def format_history(history: Iterable[Mapping[str, str]]) -> str:
    lines = []
    for message in history:
        role = str(message.get("role", "user")).upper()
        lines.append(f"{role}: {message.get('content', '')}")
    return "\n".join(lines)


def build_repo_prompt(
    query: str,
    history: Iterable[Mapping[str, str]],
    tree: str,
    content: str,
) -> str:
    sections = [
        user_query_prefix(query).rstrip(),
        "You are an expert software engineer answering questions about a GitHub repository. "
        "Use the directory structure and file contents below. Reference concrete file paths, "
        "and say so when the answer is not present in the provided files.",
    ]
    conversation = format_history(history)
    if conversation:
        sections.append(f"CONVERSATION HISTORY:\n{conversation}")
    sections.append(f"REPOSITORY STRUCTURE:\n{tree}")
    sections.append(f"FILE CONTENTS:\n{content}")
    sections.append(f"Answer the user's query: {query}")
    return "\n\n".join(sections)


def build_generic_prompt(query: str, repo_key: str) -> str:
    return (
        "You are a knowledgeable AI assistant with deep understanding of software development "
        "and GitHub repositories.\n\n"
        f"Repository: {repo_key}\n\n"
        f"{user_query_prefix(query)}"
        "Provide an insightful, technical response that directly addresses the user's query "
        "about this repository."
    )
