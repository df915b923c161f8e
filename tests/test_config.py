# tests/test_config.py
"""Tests for ExplainConfig - Pydantic Settings single source of truth."""

from pathlib import Path

import pytest


class TestExplainConfig:
    """Test ExplainConfig defaults and overrides."""

    def test_default_values(self):
        from mcqexplain.config import ExplainConfig

        cfg = ExplainConfig()
        assert cfg.lm == "gpt-4"
        assert cfg.lm_temperature == 0.2
        assert cfg.retry_budget == 2
        assert cfg.initial_max_tokens == 1500
        assert cfg.token_step == 512
        assert cfg.max_token_ceiling == 4000
        assert cfg.include_question is True
        assert cfg.include_options is True
        assert cfg.user_template is None

    def test_env_override(self, monkeypatch):
        """Environment variables with MCQEXPLAIN_ prefix override defaults."""
        from mcqexplain.config import ExplainConfig

        monkeypatch.setenv("MCQEXPLAIN_LM", "gpt-4o-mini")
        monkeypatch.setenv("MCQEXPLAIN_RETRY_BUDGET", "4")
        monkeypatch.setenv("MCQEXPLAIN_INCLUDE_OPTIONS", "false")
        cfg = ExplainConfig()
        assert cfg.lm == "gpt-4o-mini"
        assert cfg.retry_budget == 4
        assert cfg.include_options is False

    def test_explicit_kwargs_beat_env(self, monkeypatch):
        from mcqexplain.config import ExplainConfig

        monkeypatch.setenv("MCQEXPLAIN_TOKEN_STEP", "256")
        cfg = ExplainConfig(token_step=1024)
        assert cfg.token_step == 1024

    def test_home_dir_default(self):
        from mcqexplain.config import ExplainConfig

        cfg = ExplainConfig()
        assert cfg.home_dir == Path.home() / ".mcqexplain"

    def test_log_dir_derives_from_home(self, tmp_path):
        from mcqexplain.config import ExplainConfig

        cfg = ExplainConfig(home_dir=tmp_path)
        assert cfg.log_dir == tmp_path / "logs"

    def test_initial_budget_above_ceiling_rejected(self):
        from pydantic import ValidationError

        from mcqexplain.config import ExplainConfig

        with pytest.raises(ValidationError, match="max_token_ceiling"):
            ExplainConfig(initial_max_tokens=5000, max_token_ceiling=4000)

    def test_negative_retry_budget_rejected(self):
        from pydantic import ValidationError

        from mcqexplain.config import ExplainConfig

        with pytest.raises(ValidationError):
            ExplainConfig(retry_budget=-1)

    def test_zero_step_rejected(self):
        from pydantic import ValidationError

        from mcqexplain.config import ExplainConfig

        with pytest.raises(ValidationError):
            ExplainConfig(token_step=0)


class TestGetConfig:
    def test_singleton(self):
        from mcqexplain.config import get_config

        get_config.cache_clear()
        assert get_config() is get_config()
        get_config.cache_clear()
