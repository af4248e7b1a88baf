"""
Chat Services

- context_classifier: does the question need the sermon corpus?
- function_router: tool-use selection of an analytics function
- analytics: the analytics functions themselves
- retriever: pgvector similarity search over sermon chunks
- router: ChatRouter, which ties the above into one streamed answer
"""

from sermonvault.services.chat.analytics import FUNCTION_HANDLERS, run_function
from sermonvault.services.chat.context_classifier import ContextDecision, classify_context
from sermonvault.services.chat.function_router import SERMON_FUNCTIONS, FunctionCall, route_function
from sermonvault.services.chat.retriever import RetrievedChunk, SermonRetriever
from sermonvault.services.chat.router import ChatPlan, ChatRouter, bound_history

__all__ = [
    "FUNCTION_HANDLERS",
    "run_function",
    "ContextDecision",
    "classify_context",
    "SERMON_FUNCTIONS",
    "FunctionCall",
    "route_function",
    "RetrievedChunk",
    "SermonRetriever",
    "ChatPlan",
    "ChatRouter",
    "bound_history",
]
