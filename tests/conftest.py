"""Shared fixtures for the context window test suite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from context_window.models.message import CandidateMessage, MessageRole


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


def build_message(
    tokens: int,
    relevance: float = 0.5,
    *,
    id: str | None = None,
    minutes_ago: int = 0,
    engagement: float = 0.5,
    technical: float = 0.5,
    role: MessageRole = MessageRole.USER,
) -> CandidateMessage:
    """A message whose content estimates to exactly *tokens* tokens."""
    return CandidateMessage(
        id=id or f"msg-{tokens}-{relevance}-{minutes_ago}",
        role=role,
        content="x" * (tokens * 4),
        timestamp=BASE_TIME - timedelta(minutes=minutes_ago),
        relevance_score=relevance,
        engagement_score=engagement,
        technical_overlap=technical,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def five_messages() -> list[CandidateMessage]:
    """2000 tokens in total, oldest first."""
    scores = [0.9, 0.2, 0.5, 0.1, 0.8]
    return [
        build_message(400, score, id=f"m{i}", minutes_ago=50 - i * 10)
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def make_message():
    return build_message
