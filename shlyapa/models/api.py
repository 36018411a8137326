"""Pydantic request/response models for API endpoints."""

from typing import Literal

from pydantic import BaseModel, Field

ChatType = Literal["private", "group", "channel"]


class InboundMessage(BaseModel):
    """A message event as delivered by the transport layer."""

    text: str = ""
    chat_id: str | int
    chat_type: ChatType = "private"
    sender_id: str | int | None = None
    out: bool = False  # Sent by this account


class ProcessResponse(BaseModel):
    reply: str | None = None


class StatusResponse(BaseModel):
    enabled: bool
    provider: str
    healthy: bool
    model: str
    host: str
    allowed_chats_count: int
    trigger_words: list[str] = Field(default_factory=list)
    temperature: float
    max_tokens: int
