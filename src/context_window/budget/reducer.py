"""Budget reducer. Shrinks a message set to a token target in ordered stages.

Stages run in sequence (relevance filtering, truncation, age eviction), each
only while the set is still over target. The survivors are handed back in
their original input order; the sorts inside each stage are working orders.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from context_window.budget.quality import quality_impact, score_quality
from context_window.budget.token_budget import TokenBudget
from context_window.models.message import CandidateMessage

logger = logging.getLogger(__name__)

MAX_MESSAGE_TOKENS = 150
TRUNCATION_MARKER = "..."


@dataclass
class StageOutcome:
    messages: list[CandidateMessage]
    tokens_removed: int = 0
    messages_removed: int = 0
    # (original, replacement) pairs for stages that rewrite content
    replaced: list[tuple[CandidateMessage, CandidateMessage]] = field(default_factory=list)


@dataclass
class ReductionResult:
    messages: list[CandidateMessage]
    tokens_removed: int
    messages_removed: int
    strategy: str
    quality_before: float = 0.0
    quality_after: float = 0.0
    quality_impact: float = 0.0


class ReductionStage(ABC):
    """One reduce-to-target step of the pipeline."""

    name: str = ""
    # Evicting stages never drop the last remaining message.
    evicts: bool = True

    @abstractmethod
    def apply(
        self, messages: Sequence[CandidateMessage], target_tokens: int, budget: TokenBudget
    ) -> StageOutcome: ...


class _TailEviction(ReductionStage):
    """Sort a working copy, then pop from the tail until the set fits."""

    @abstractmethod
    def sort_key(self, message: CandidateMessage): ...

    def apply(
        self, messages: Sequence[CandidateMessage], target_tokens: int, budget: TokenBudget
    ) -> StageOutcome:
        # sorted() is stable, so equal keys keep their input order and the
        # later of two tied messages is evicted first.
        working = sorted(messages, key=self.sort_key, reverse=True)
        current = budget.total_tokens(working)
        removed_tokens = 0
        removed_count = 0
        while current > target_tokens and len(working) > 1:
            removed = working.pop()
            tokens = budget.estimate_message_tokens(removed)
            current -= tokens
            removed_tokens += tokens
            removed_count += 1
        return StageOutcome(working, removed_tokens, removed_count)


class RelevanceFilter(_TailEviction):
    """Drop the lowest-relevance messages first."""

    name = "relevance_filtering"

    def sort_key(self, message: CandidateMessage) -> float:
        return message.relevance_score


class AgeEvictor(_TailEviction):
    """Drop the oldest messages first."""

    name = "age_filtering"

    def sort_key(self, message: CandidateMessage):
        return message.timestamp


class MessageTruncator(ReductionStage):
    """Cut oversized messages down to roughly *max_message_tokens* each."""

    name = "truncation"
    evicts = False

    def __init__(self, max_message_tokens: int = MAX_MESSAGE_TOKENS, marker: str = TRUNCATION_MARKER):
        self.max_message_tokens = max_message_tokens
        self.marker = marker

    def apply(
        self, messages: Sequence[CandidateMessage], target_tokens: int, budget: TokenBudget
    ) -> StageOutcome:
        current = budget.total_tokens(messages)
        removed_tokens = 0
        result: list[CandidateMessage] = []
        replaced: list[tuple[CandidateMessage, CandidateMessage]] = []

        for message in messages:
            tokens = budget.estimate_message_tokens(message)
            if current <= target_tokens or tokens <= self.max_message_tokens:
                result.append(message)
                continue
            content = message.content
            keep = math.floor(len(content) * self.max_message_tokens / tokens)
            truncated_content = content[:keep] + self.marker
            if len(truncated_content) >= len(content):
                result.append(message)
                continue
            truncated = message.with_content(truncated_content)
            saved = tokens - budget.estimate_message_tokens(truncated)
            current -= saved
            removed_tokens += saved
            result.append(truncated)
            replaced.append((message, truncated))

        return StageOutcome(result, removed_tokens, 0, replaced)


def default_stages() -> list[ReductionStage]:
    return [RelevanceFilter(), MessageTruncator(), AgeEvictor()]


class BudgetReducer:
    def __init__(
        self,
        stages: Sequence[ReductionStage] | None = None,
        budget: TokenBudget | None = None,
    ):
        self.stages = list(stages) if stages is not None else default_stages()
        self.budget = budget or TokenBudget()

    def reduce(self, messages: Sequence[CandidateMessage], target_tokens: int) -> ReductionResult:
        """Run the stages in order until *messages* fit *target_tokens*.

        A single remaining message is a fixed point for the evicting stages,
        so the result is never empty when the input was not. That message may
        still be over target after truncation.
        """
        original = list(messages)
        position = {id(m): i for i, m in enumerate(original)}
        working = list(original)
        applied: list[str] = []
        tokens_removed = 0
        messages_removed = 0

        for stage in self.stages:
            if self.budget.fits_budget(working, target_tokens):
                break
            if stage.evicts and len(working) <= 1:
                continue
            outcome = stage.apply(working, target_tokens, self.budget)
            for old, new in outcome.replaced:
                position[id(new)] = position[id(old)]
            working = outcome.messages
            tokens_removed += outcome.tokens_removed
            messages_removed += outcome.messages_removed
            applied.append(stage.name)
            logger.debug(
                "Stage %s removed %d tokens, %d messages",
                stage.name, outcome.tokens_removed, outcome.messages_removed,
            )

        working.sort(key=lambda m: position[id(m)])
        before = score_quality(original)
        after = score_quality(working)
        return ReductionResult(
            messages=working,
            tokens_removed=tokens_removed,
            messages_removed=messages_removed,
            strategy="+".join(applied),
            quality_before=before,
            quality_after=after,
            quality_impact=quality_impact(before, after),
        )
