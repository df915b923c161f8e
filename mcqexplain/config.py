# mcqexplain/config.py
"""
mcqexplain configuration - single source of truth via Pydantic Settings.

Resolution order: CLI flags > env vars (MCQEXPLAIN_*) > .env file > defaults.

The pipeline never reads this module directly; :func:`get_config` is called at
the outer edge (SDK, CLI) and the resulting object is passed into
``explain()`` and treated as read-only from then on.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExplainConfig(BaseSettings):
    """Central configuration for explanation generation."""

    model_config = SettingsConfigDict(
        env_prefix="MCQEXPLAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Provider ---
    lm: str = "gpt-4"
    api_key: str = ""
    api_base: Optional[str] = None
    lm_temperature: float = 0.2
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    request_timeout: float = 60.0
    extra_body: dict[str, Any] = Field(default_factory=dict)

    # --- Prompting ---
    system_prompt: Optional[str] = None
    user_template: Optional[str] = None
    style_prompt: Optional[str] = None
    include_question: bool = True
    include_options: bool = True

    # --- Retry policy ---
    retry_budget: int = Field(default=2, ge=0)
    initial_max_tokens: int = Field(default=1500, gt=0)
    token_step: int = Field(default=512, gt=0)
    max_token_ceiling: int = Field(default=4000, gt=0)

    # --- Paths ---
    home_dir: Path = Field(default_factory=lambda: Path.home() / ".mcqexplain")

    @property
    def log_dir(self) -> Path:
        return self.home_dir / "logs"

    @model_validator(mode="after")
    def _check_token_budget(self) -> "ExplainConfig":
        if self.initial_max_tokens > self.max_token_ceiling:
            raise ValueError(
                f"initial_max_tokens ({self.initial_max_tokens}) exceeds "
                f"max_token_ceiling ({self.max_token_ceiling})"
            )
        return self


@lru_cache(maxsize=1)
def get_config() -> ExplainConfig:
    """Return the global config singleton."""
    return ExplainConfig()
