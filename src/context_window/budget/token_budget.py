"""Token counting and budget checks."""
from __future__ import annotations

import math
from collections.abc import Iterable

from context_window.models.message import CandidateMessage

CHARS_PER_TOKEN = 4.0


def estimate_tokens(text: str, chars_per_token: float = CHARS_PER_TOKEN) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


class TokenBudget:
    """Coarse character-based estimator shared by every reduction stage.

    Thresholds elsewhere (the truncation cap, default ceilings) are tuned
    against this approximation, not a real tokenizer.
    """

    def __init__(self, chars_per_token: float = CHARS_PER_TOKEN):
        self.chars_per_token = chars_per_token

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text, self.chars_per_token)

    def estimate_message_tokens(self, message: CandidateMessage) -> int:
        return self.estimate_tokens(message.content)

    def total_tokens(self, messages: Iterable[CandidateMessage]) -> int:
        return sum(self.estimate_message_tokens(m) for m in messages)

    def fits_budget(self, messages: Iterable[CandidateMessage], target_tokens: int) -> bool:
        return self.total_tokens(messages) <= target_tokens
