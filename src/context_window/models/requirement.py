from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BudgetRequirement(BaseModel):
    """Token ceiling and category metadata produced by the query classifier."""

    model_config = ConfigDict(frozen=True)

    target_tokens: int = Field(ge=0)
    level: str = "standard"
    requires_history: bool = True
