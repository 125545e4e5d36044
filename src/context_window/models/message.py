from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from context_window.utils import clamp_score, utc_now


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class CandidateMessage(BaseModel):
    """A prior conversation turn, already scored by the relevance stage."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: MessageRole = MessageRole.USER
    content: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    relevance_score: float = 0.0
    engagement_score: float = 0.0
    technical_overlap: float = 0.0

    @field_validator("content", mode="before")
    @classmethod
    def _content_not_null(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("timestamp", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are read as UTC so they sort against aware ones.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("relevance_score", "engagement_score", "technical_overlap", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    def with_content(self, content: str) -> CandidateMessage:
        return self.model_copy(update={"content": content})
