# mcqexplain/envelope.py
"""
``_mcqexplain`` metadata envelope builder.

Every SDK/CLI output carries a ``_mcqexplain`` key containing the dict
returned by :func:`build_envelope`.  The envelope describes how the record was
produced; it never contains raw model output.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from . import __version__


def _get_model_info(config: Any = None) -> tuple[str, float]:
    """Model name and temperature from *config*, or from the global config."""
    if config is None:
        from mcqexplain.config import get_config

        config = get_config()
    return config.lm, config.lm_temperature


def build_envelope(
    *,
    pipeline: str,
    config: Any = None,
    duration_s: Optional[float] = None,
    tokens: Optional[dict[str, int]] = None,
    attempts: int = 0,
    synthesized: bool = False,
    attempt_trace: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Build a JSON-serializable metadata envelope.

    Parameters
    ----------
    pipeline:
        Name of the entry point that produced the output (``explain`` or
        ``salvage``).
    config:
        :class:`~mcqexplain.config.ExplainConfig` used for the run.  Defaults
        to the global config.
    duration_s:
        Wall-clock processing time in seconds, or ``None``.
    tokens:
        Dict with ``input`` and ``output`` token counts.
        Defaults to ``{"input": 0, "output": 0}``.
    attempts:
        Number of transport attempts made.
    synthesized:
        Whether the record came from the fallback synthesizer.
    attempt_trace:
        Optional per-attempt diagnostics (see ``AttemptRecord.to_dict``).
    """
    model, model_temperature = _get_model_info(config)

    return {
        "version": __version__,
        "pipeline": pipeline,
        "model": model,
        "model_temperature": model_temperature,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "duration_s": duration_s,
        "tokens": tokens if tokens is not None else {"input": 0, "output": 0},
        "attempts": attempts,
        "fallback": synthesized,
        "attempt_trace": attempt_trace or [],
    }
