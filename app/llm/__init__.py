# FILE: app/llm/__init__.py
"""
LLM module exports.

- gemini_client: primary/secondary Gemini text generation
- prompts: prompt builders for file, repository and generic questions
"""

from app.llm.gemini_client import (
    GeminiClient,
    GeminiProvider,
    ProviderError,
    create_gemini_client,
)
from app.llm.prompts import (
    build_file_prompt,
    build_repo_prompt,
    build_generic_prompt,
)

__all__ = [
    "GeminiClient",
    "GeminiProvider",
    "ProviderError",
    "create_gemini_client",
    "build_file_prompt",
    "build_repo_prompt",
    "build_generic_prompt",
]
