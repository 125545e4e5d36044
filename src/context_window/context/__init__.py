from __future__ import annotations

from context_window.budget.reducer import BudgetReducer
from context_window.cache.window_cache import WindowCache
from context_window.config import ContextWindowConfig, load_config
from context_window.context.manager import ContextManager
from context_window.models.context import ContextResult, WindowRecord
from context_window.models.message import CandidateMessage, MessageRole
from context_window.models.requirement import BudgetRequirement

__all__ = [
    "BudgetReducer",
    "BudgetRequirement",
    "CandidateMessage",
    "ContextManager",
    "ContextResult",
    "ContextWindowConfig",
    "MessageRole",
    "WindowCache",
    "WindowRecord",
    "load_config",
]
