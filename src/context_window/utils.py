"""Shared utility functions for context window selection."""
from __future__ import annotations

import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clamp_score(value, default: float = 0.0) -> float:
    """Coerce a score into [0, 1].

    Upstream scorers occasionally omit a score or hand back something slightly
    outside the unit interval; missing values count as *default*.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError("score must be a number, not a bool")
    try:
        score = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"score must be a number, got {value!r}") from exc
    if math.isnan(score):
        return default
    return min(1.0, max(0.0, score))
