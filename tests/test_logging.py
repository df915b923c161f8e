# tests/test_logging.py
"""Tests for session logging and the structured log helpers."""

import logging


class TestSetupLogging:
    def test_creates_session_file_and_symlink(self, tmp_path):
        from mcqexplain.utils.logging import get_current_log_file, get_session_id, setup_logging

        log_file = setup_logging(level="DEBUG", log_dir=tmp_path)
        assert log_file.exists()
        assert log_file.name.startswith("mcqexplain_")
        assert get_session_id() in log_file.name
        assert get_current_log_file() == log_file

        link = tmp_path / "mcqexplain.log"
        if link.is_symlink():
            assert link.resolve() == log_file.resolve()

    def test_env_log_dir(self, tmp_path, monkeypatch):
        from mcqexplain.utils.logging import setup_logging

        monkeypatch.setenv("MCQEXPLAIN_LOG_DIR", str(tmp_path / "envlogs"))
        log_file = setup_logging()
        assert log_file.parent == tmp_path / "envlogs"

    def test_records_carry_session_id(self, tmp_path):
        from mcqexplain.utils.logging import get_logger, get_session_id, setup_logging

        log_file = setup_logging(level="INFO", log_dir=tmp_path)
        get_logger("controller").info("hello from the pipeline")
        for handler in logging.getLogger("mcqexplain").handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "hello from the pipeline" in content
        assert get_session_id() in content


class TestGetLogger:
    def test_namespaced(self):
        from mcqexplain.utils.logging import get_logger

        assert get_logger("transport").name == "mcqexplain.transport"
        assert get_logger("mcqexplain.sdk").name == "mcqexplain.sdk"


class TestHelpers:
    def test_attempt_outcome_levels(self, caplog):
        from mcqexplain.utils.logging import get_logger, log_attempt_outcome

        logger = get_logger("tests.helpers")
        with caplog.at_level(logging.DEBUG, logger="mcqexplain"):
            log_attempt_outcome(logger, 1, "validated")
            log_attempt_outcome(logger, 2, "retry_truncated", "reply hit the token limit")
            log_attempt_outcome(logger, 3, "failed", "truncated with no retries left")

        levels = [r.levelno for r in caplog.records]
        assert levels == [logging.INFO, logging.WARNING, logging.ERROR]
        assert "[Attempt 2] retry_truncated: reply hit the token limit" in caplog.text

    def test_prompt_preview_truncated(self, caplog):
        from mcqexplain.utils.logging import get_logger, log_prompt

        logger = get_logger("tests.helpers")
        with caplog.at_level(logging.DEBUG, logger="mcqexplain"):
            log_prompt(logger, "user", "x" * 50, truncate_at=10)
        assert "TRUNCATED, 50 chars total" in caplog.text
