"""
Pydantic schemas for the Chat API

The chat endpoint is stateless: the client sends its own recent history
with every message, and the server bounds it before use.
"""

from typing import List, Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One prior turn of the conversation, as kept by the client."""

    role: Literal["user", "assistant", "system"] = Field(description="Message role")
    content: str = Field(description="Message content")


class ChatRequest(BaseModel):
    """Request schema for POST /api/chat."""

    message: str = Field(
        description="User's message/query",
        min_length=1,
        max_length=4000
    )
    messages: List[ChatMessage] = Field(
        default_factory=list,
        description="Prior conversation turns, oldest first"
    )
