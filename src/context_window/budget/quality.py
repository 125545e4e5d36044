"""Composite quality score over a set of candidate messages."""
from __future__ import annotations

from collections.abc import Sequence

from context_window.models.message import CandidateMessage

RELEVANCE_WEIGHT = 0.5
ENGAGEMENT_WEIGHT = 0.3
TECHNICAL_WEIGHT = 0.2


def score_quality(messages: Sequence[CandidateMessage]) -> float:
    """Weighted mean of relevance, engagement and technical overlap. 0 when empty."""
    if not messages:
        return 0.0
    count = len(messages)
    avg_relevance = sum(m.relevance_score for m in messages) / count
    avg_engagement = sum(m.engagement_score for m in messages) / count
    avg_technical = sum(m.technical_overlap for m in messages) / count
    score = (
        avg_relevance * RELEVANCE_WEIGHT
        + avg_engagement * ENGAGEMENT_WEIGHT
        + avg_technical * TECHNICAL_WEIGHT
    )
    return min(1.0, max(0.0, score))


def quality_impact(before: float, after: float) -> float:
    """Relative quality drop from *before* to *after*; 0 when there was nothing to lose."""
    if before <= 0:
        return 0.0
    return (before - after) / before
