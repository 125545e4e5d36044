"""Configuration for the context window manager, loaded from config.toml."""
from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from context_window.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_SECTION = "context_window"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config.toml"


class ContextWindowConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_tokens: int = Field(default=1200, gt=0)  # ceiling before the downstream reserve
    reserve_tokens: int = Field(default=200, ge=0)  # system prompt + model reply
    max_messages: int = Field(default=10, gt=0)
    priority_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    expiration_minutes: float = Field(default=30, gt=0)

    @model_validator(mode="after")
    def _reserve_below_max(self) -> ContextWindowConfig:
        if self.reserve_tokens >= self.max_tokens:
            raise ValueError("reserve_tokens must be smaller than max_tokens")
        return self

    @property
    def available_tokens(self) -> int:
        return self.max_tokens - self.reserve_tokens

    def merged(self, **overrides: Any) -> ContextWindowConfig:
        """Return a validated copy with *overrides* applied."""
        return build_config({**self.model_dump(), **overrides})


def build_config(data: dict[str, Any]) -> ContextWindowConfig:
    try:
        return ContextWindowConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid context window configuration: {exc}") from exc


def load_config(path: str | Path | None = None) -> ContextWindowConfig:
    """Load the [context_window] table from a TOML file.

    Falls back to defaults when no path is given and the project-root
    config.toml is absent. An explicit path that does not exist is an error.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        return ContextWindowConfig()
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Could not parse {config_path}: {exc}") from exc
    logger.debug("Loaded context window config from %s", config_path)
    return build_config(data.get(CONFIG_SECTION, {}))
