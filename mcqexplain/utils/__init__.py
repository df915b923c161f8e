"""
mcqexplain utilities package - cross-cutting helpers.

Logging is the only concern here; it is re-exported through ``__all__`` so
that pipeline modules can import it without reaching into submodules.
"""

from .logging import (
    setup_logging,
    get_logger,
    get_current_log_file,
    get_session_id,
    log_prompt,
    log_llm_response,
    log_attempt_start,
    log_attempt_outcome,
    log_run_complete,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_current_log_file",
    "get_session_id",
    "log_prompt",
    "log_llm_response",
    "log_attempt_start",
    "log_attempt_outcome",
    "log_run_complete",
]
