"""Business logic services."""

from sermonvault.services.llm import LLMService, get_llm_service
from sermonvault.services.storage import SermonStorage, get_storage

__all__ = [
    "LLMService",
    "get_llm_service",
    "SermonStorage",
    "get_storage",
]
