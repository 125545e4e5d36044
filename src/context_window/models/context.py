from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from context_window.models.message import CandidateMessage
from context_window.utils import clamp_score

NO_OPTIMIZATION = "no_optimization_needed"
MINIMAL_FALLBACK = "minimal_fallback"


class ContextResult(BaseModel):
    messages: list[CandidateMessage] = Field(default_factory=list)
    estimated_tokens: int = 0
    strategy: str = NO_OPTIMIZATION
    quality_score: float = 0.0
    tokens_removed: int = 0
    messages_removed: int = 0
    quality_impact: float = 0.0

    @field_validator("quality_score", mode="before")
    @classmethod
    def _clamp_quality(cls, value) -> float:
        return clamp_score(value)


class WindowRecord(BaseModel):
    """Cached outcome of one optimization for one session."""

    result: ContextResult
    target_tokens: int
    utilization: float = 0.0
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
