"""Context manager: decides whether a candidate set needs trimming and caches the outcome."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from context_window.budget.quality import score_quality
from context_window.budget.reducer import BudgetReducer
from context_window.budget.token_budget import TokenBudget
from context_window.cache.window_cache import WindowCache
from context_window.config import ContextWindowConfig
from context_window.models.context import MINIMAL_FALLBACK, NO_OPTIMIZATION, ContextResult, WindowRecord
from context_window.models.message import CandidateMessage
from context_window.models.requirement import BudgetRequirement

logger = logging.getLogger(__name__)

FALLBACK_QUALITY = 0.3

MessageLike = CandidateMessage | Mapping[str, Any]


def _as_message(value: MessageLike) -> CandidateMessage:
    if isinstance(value, CandidateMessage):
        return value
    return CandidateMessage.model_validate(value)


def _as_requirement(value: BudgetRequirement | Mapping[str, Any]) -> BudgetRequirement:
    if isinstance(value, BudgetRequirement):
        return value
    return BudgetRequirement.model_validate(value)


class ContextManager:
    """Public entry point: fit scored conversation history into a token budget.

    One manager is meant to be shared by the request-handling layer; the
    window cache it owns is the only state carried between calls.
    """

    def __init__(
        self,
        config: ContextWindowConfig | None = None,
        cache: WindowCache | None = None,
        reducer: BudgetReducer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or ContextWindowConfig()
        self.cache = cache or WindowCache(self.config.expiration_minutes, clock=clock)
        self.reducer = reducer or BudgetReducer()

    @property
    def budget(self) -> TokenBudget:
        return self.reducer.budget

    def manage(
        self,
        session_id: str,
        candidate_messages: Iterable[MessageLike] | None,
        requirement: BudgetRequirement | Mapping[str, Any],
    ) -> ContextResult:
        """Return the subset of *candidate_messages* that fits the requirement.

        Never raises for per-request problems: any failure yields the minimal
        fallback (the single most relevant candidate, quality 0.3).
        """
        start = time.perf_counter()
        candidates: list[MessageLike] = []
        try:
            for candidate in candidate_messages or []:
                candidates.append(candidate)
            requirement = _as_requirement(requirement)
            messages = [_as_message(m) for m in candidates]
            total = self.budget.total_tokens(messages)

            if total <= requirement.target_tokens:
                logger.debug(
                    "Context for %s within limits (%d <= %d tokens), no optimization needed",
                    session_id, total, requirement.target_tokens,
                )
                return ContextResult(
                    messages=messages,
                    estimated_tokens=total,
                    strategy=NO_OPTIMIZATION,
                    quality_score=score_quality(messages),
                )

            target = min(requirement.target_tokens, self.config.available_tokens)
            logger.info(
                "Context management start [%s]: %d messages, %d tokens, level=%s, target=%d",
                session_id, len(messages), total, requirement.level, target,
            )
            reduction = self.reducer.reduce(messages, target)
            result = ContextResult(
                messages=reduction.messages,
                estimated_tokens=self.budget.total_tokens(reduction.messages),
                strategy=f"optimized_{reduction.strategy}",
                quality_score=reduction.quality_after,
                tokens_removed=reduction.tokens_removed,
                messages_removed=reduction.messages_removed,
                quality_impact=reduction.quality_impact,
            )
            self.cache.put(session_id, result, target)
            self._note_soft_limits(session_id, result)

            logger.info(
                "Context management complete [%s] in %.1fms: %d messages, %d tokens, "
                "removed %d tokens, strategy=%s, quality_impact=%.3f",
                session_id, (time.perf_counter() - start) * 1000, len(result.messages),
                result.estimated_tokens, result.tokens_removed, reduction.strategy,
                result.quality_impact,
            )
            return result
        except Exception:
            logger.exception("Context management failed for session %s, using minimal context", session_id)
            return self._minimal_context(candidates)

    def _minimal_context(self, candidates: list[MessageLike]) -> ContextResult:
        usable: list[CandidateMessage] = []
        for candidate in candidates:
            try:
                usable.append(_as_message(candidate))
            except (ValueError, TypeError):
                continue
        if not usable:
            return ContextResult(messages=[], estimated_tokens=0, strategy=MINIMAL_FALLBACK, quality_score=FALLBACK_QUALITY)
        top = max(usable, key=lambda m: m.relevance_score)
        return ContextResult(
            messages=[top],
            estimated_tokens=self.budget.estimate_message_tokens(top),
            strategy=MINIMAL_FALLBACK,
            quality_score=FALLBACK_QUALITY,
        )

    def _note_soft_limits(self, session_id: str, result: ContextResult) -> None:
        # max_messages and priority_threshold are advisory only.
        if len(result.messages) > self.config.max_messages:
            logger.debug(
                "Context for %s keeps %d messages (soft cap %d)",
                session_id, len(result.messages), self.config.max_messages,
            )
        weak = sum(1 for m in result.messages if m.relevance_score < self.config.priority_threshold)
        if weak:
            logger.debug(
                "Context for %s keeps %d messages below relevance %.2f",
                session_id, weak, self.config.priority_threshold,
            )

    # -- Configuration --

    def update_config(self, **overrides: Any) -> ContextWindowConfig:
        self.config = self.config.merged(**overrides)
        self.cache.expiration_minutes = self.config.expiration_minutes
        logger.info("Context manager configuration updated: %s", overrides)
        return self.config

    # -- Window cache access --

    def get_cached_window(self, session_id: str) -> WindowRecord | None:
        return self.cache.get(session_id)

    def clear_session(self, session_id: str) -> None:
        if self.cache.clear(session_id):
            logger.info("Cleared context window for session %s", session_id)

    def clean_expired_windows(self) -> int:
        return self.cache.clean_expired()

    def stats(self) -> dict[str, Any]:
        return self.cache.stats()

    def memory_usage(self) -> dict[str, Any]:
        return self.cache.memory_usage()
