"""
mcqexplain logging utilities - session-based debug and audit logging.

Overview:
---------
Centralised logging configuration for the explanation pipeline.  Provides
session-based file logging with unique identifiers, configurable verbosity,
and structured output for debugging prompt construction, raw model replies,
and the attempt/retry trace of each request.

Log Location:
-------------
- Default: ~/.mcqexplain/logs/
- Each session creates a timestamped log file with session ID
- A symlink 'mcqexplain.log' always points to the latest session
- Can be overridden via MCQEXPLAIN_LOG_DIR environment variable

Log Levels:
-----------
- DEBUG: Full prompts, raw model replies, validation issues
- INFO: Attempt flow, success/fallback summaries
- WARNING: Retries, truncation, fallback synthesis
- ERROR: Terminal pipeline failures

Usage:
------
    from mcqexplain.utils.logging import get_logger, setup_logging

    log_file = setup_logging(level="DEBUG")
    logger = get_logger(__name__)
    logger.info("Requesting explanation...")
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

# ============================================================================
# Constants
# ============================================================================

DEFAULT_LOG_DIR = Path.home() / ".mcqexplain" / "logs"
DEFAULT_LOG_LEVEL = "INFO"
SYMLINK_NAME = "mcqexplain.log"
ROOT_LOGGER_NAME = "mcqexplain"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# File format includes line numbers
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s:%(lineno)d | %(message)s"

_logging_initialised = False
_log_file_path: Optional[Path] = None
_session_id: Optional[str] = None


# ============================================================================
# Session ID Filter / Formatter
# ============================================================================

class SessionIdFilter(logging.Filter):
    """Add session_id to all log records."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id  # type: ignore[attr-defined]
        return True


class SessionFormatter(logging.Formatter):
    """Formatter that adds session_id, defaulting to 'N/A' if not present."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id or "N/A"  # type: ignore[attr-defined]
        return super().format(record)


# ============================================================================
# Setup Functions
# ============================================================================

def generate_session_id() -> str:
    """Generate a short unique session ID (6 characters)."""
    return uuid.uuid4().hex[:6]


def get_log_directory() -> Path:
    """Get the log directory, respecting MCQEXPLAIN_LOG_DIR."""
    env_log_dir = os.getenv("MCQEXPLAIN_LOG_DIR")
    if env_log_dir:
        return Path(env_log_dir)
    return DEFAULT_LOG_DIR


def generate_log_filename(session_id: str) -> str:
    """Generate a timestamped log filename with session ID."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"mcqexplain_{timestamp}_{session_id}.log"


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console_output: bool = False,
    quiet: bool = False,
) -> Path:
    """
    Initialise mcqexplain logging with a session file and optional console output.

    Parameters
    ----------
    level : str, optional
        Log level: DEBUG, INFO, WARNING, ERROR. Defaults to INFO.
        Can also be set via MCQEXPLAIN_LOG_LEVEL environment variable.
    log_dir : Path, optional
        Directory for log files. Defaults to ~/.mcqexplain/logs/
    console_output : bool
        If True, also log to stderr.
    quiet : bool
        If True, suppress console output entirely.

    Returns
    -------
    Path
        Path to the log file being written to.
    """
    global _logging_initialised, _log_file_path, _session_id

    _session_id = generate_session_id()

    if level is None:
        level = os.getenv("MCQEXPLAIN_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_dir is None:
        log_dir = get_log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / generate_log_filename(_session_id)
    _log_file_path = log_file

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)

    root_logger.handlers.clear()
    for f in root_logger.filters[:]:
        root_logger.removeFilter(f)

    root_logger.setLevel(log_level)
    root_logger.addFilter(SessionIdFilter(_session_id))

    # No rotation; each session gets its own file
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(SessionFormatter(FILE_LOG_FORMAT, LOG_DATE_FORMAT))
    root_logger.addHandler(file_handler)

    if console_output and not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(SessionFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root_logger.addHandler(console_handler)

    root_logger.propagate = False

    symlink_path = log_dir / SYMLINK_NAME
    try:
        if symlink_path.is_symlink() or symlink_path.exists():
            symlink_path.unlink()
        symlink_path.symlink_to(log_file.name)
    except OSError:
        # Symlinks are unavailable on some platforms (e.g. Windows without admin)
        pass

    _logging_initialised = True

    root_logger.info("=" * 80)
    root_logger.info("mcqexplain logging session started")
    root_logger.info(f"  Session ID: {_session_id}")
    root_logger.info(f"  Log file: {log_file}")
    root_logger.info(f"  Log level: {level.upper()}")
    root_logger.info("=" * 80)

    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``mcqexplain`` namespace.

    Unlike the CLI, library use does not create a log file implicitly: until
    :func:`setup_logging` is called, records go through the standard logging
    hierarchy and are handled by whatever the host application configured.
    """
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def get_current_log_file() -> Optional[Path]:
    """Return the path to the current log file, if logging is initialised."""
    return _log_file_path


def get_session_id() -> Optional[str]:
    """Return the current session ID, if logging is initialised."""
    return _session_id


def is_logging_initialised() -> bool:
    return _logging_initialised


# ============================================================================
# Structured logging helpers
# ============================================================================

def _preview(content: str, truncate_at: int) -> str:
    if len(content) > truncate_at:
        return content[:truncate_at] + f"... [TRUNCATED, {len(content)} chars total]"
    return content


def log_prompt(
    logger: logging.Logger,
    prompt_type: str,
    prompt_content: str,
    truncate_at: int = 2000,
) -> None:
    """Log a prompt being sent to the provider (DEBUG, truncated)."""
    logger.debug(f"PROMPT ({prompt_type}):\n{_preview(prompt_content, truncate_at)}")


def log_llm_response(
    logger: logging.Logger,
    response_type: str,
    response_content: str,
    truncate_at: int = 2000,
) -> None:
    """Log a raw provider reply (DEBUG, truncated)."""
    logger.debug(f"LLM RESPONSE ({response_type}):\n{_preview(response_content, truncate_at)}")


def log_attempt_start(
    logger: logging.Logger,
    attempt: int,
    token_budget: int,
    force_default_prompt: bool,
) -> None:
    """Log the start of one prompt/transport/parse cycle."""
    msg = f"[Attempt {attempt}] max_tokens={token_budget}"
    if force_default_prompt:
        msg += " | default prompt forced"
    logger.info(msg)


def log_attempt_outcome(
    logger: logging.Logger,
    attempt: int,
    outcome: str,
    detail: Optional[str] = None,
) -> None:
    """Log how an attempt ended. Retries and fallbacks are warnings."""
    msg = f"[Attempt {attempt}] {outcome}"
    if detail:
        msg += f": {detail}"
    if outcome == "validated":
        logger.info(msg)
    elif outcome == "failed":
        logger.error(msg)
    else:
        logger.warning(msg)


def log_run_complete(
    logger: logging.Logger,
    question: str,
    success: bool,
    attempts: int,
    synthesized: bool = False,
    total_duration: Optional[float] = None,
) -> None:
    """Log a per-request completion summary."""
    logger.info("-" * 60)
    logger.info(f"EXPLANATION {'SUCCEEDED' if success else 'FAILED'}")
    logger.info(f"  Question: {_preview(question, 80)}")
    logger.info(f"  Attempts: {attempts}")
    if success:
        logger.info(f"  Method: {'fallback synthesis' if synthesized else 'direct validation'}")
    if total_duration is not None:
        logger.info(f"  Duration: {total_duration:.2f}s")
    logger.info("-" * 60)
