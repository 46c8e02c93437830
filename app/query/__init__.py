# FILE: app/query/__init__.py
"""Repository question pipeline."""

from .identity import get_client_identity, UNKNOWN_CLIENT
from .schemas import ConversationMessage, QueryRequest, QueryOutcome, ContextStats, PromptContext
from .background import BackgroundRunner
from .orchestrator import QueryOrchestrator

__all__ = [
    "get_client_identity",
    "UNKNOWN_CLIENT",
    "ConversationMessage",
    "QueryRequest",
    "QueryOutcome",
    "ContextStats",
    "PromptContext",
    "BackgroundRunner",
    "QueryOrchestrator",
]
