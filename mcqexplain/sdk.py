# mcqexplain/sdk.py
"""
mcqexplain Python SDK -- programmatic access without the CLI.

Core functions::

    from mcqexplain.sdk import explain_question, salvage_reply

    result = explain_question({
        "questionTitle": "Which gas makes up most of the atmosphere?",
        "options": [{"id": "A", "text": "Oxygen"}, {"id": "B", "text": "Nitrogen"}],
        "correctAnswers": ["B"],
    })
    result = salvage_reply(stored_reply_text, request)

Both return the camelCase storage form of the explanation with a
``_mcqexplain`` metadata envelope attached.  Failures raise
:class:`~mcqexplain.errors.PipelineError` subclasses.

``openai`` is imported lazily by the transport, so :func:`salvage_reply`
works without it.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from .errors import EmptyReplyError, RetryableParseError, TruncatedReplyError
from .schema import ExplanationRequest
from .transport import FinishReason
from .utils.logging import get_logger

if TYPE_CHECKING:
    from .config import ExplainConfig
    from .metrics import PipelineMetrics
    from .transport import Transport

logger = get_logger(__name__)

RequestLike = Union[ExplanationRequest, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coerce_request(request: RequestLike) -> ExplanationRequest:
    """Accept a request model or a camelCase/snake_case mapping.

    Raises
    ------
    pydantic.ValidationError
        If the mapping does not describe a question.
    """
    if isinstance(request, ExplanationRequest):
        return request
    return ExplanationRequest.model_validate(dict(request))


def _resolve_config(config: Optional["ExplainConfig"]) -> "ExplainConfig":
    if config is not None:
        return config
    from .config import get_config

    return get_config()


def _attach_envelope(
    output: dict[str, Any],
    *,
    pipeline: str,
    config: "ExplainConfig",
    metrics: Optional["PipelineMetrics"] = None,
    duration_s: Optional[float] = None,
    attempts: int = 0,
    synthesized: bool = False,
    attempt_trace: Optional[list[dict[str, Any]]] = None,
) -> None:
    """Attach a ``_mcqexplain`` metadata envelope to *output* in-place."""
    from .envelope import build_envelope

    tokens: Optional[dict[str, int]] = None
    if metrics is not None:
        duration_s = metrics.total_duration_s if duration_s is None else duration_s
        tokens = metrics.token_summary()

    output["_mcqexplain"] = build_envelope(
        pipeline=pipeline,
        config=config,
        duration_s=duration_s,
        tokens=tokens,
        attempts=attempts,
        synthesized=synthesized,
        attempt_trace=attempt_trace,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def explain_question(
    request: RequestLike,
    *,
    config: Optional["ExplainConfig"] = None,
    transport: Optional["Transport"] = None,
) -> dict[str, Any]:
    """Generate a validated explanation for one question.

    Parameters
    ----------
    request:
        :class:`ExplanationRequest` or an equivalent mapping.
    config:
        Settings to use; defaults to :func:`mcqexplain.config.get_config`.
    transport:
        Transport to call; defaults to an
        :class:`~mcqexplain.transport.OpenAITransport` built from *config*.

    Returns
    -------
    dict
        The explanation in storage form plus a ``_mcqexplain`` envelope.

    Raises
    ------
    PipelineError
        Any terminal pipeline failure.  Show ``exc.user_message`` to users.
    """
    from .controller import AttemptController

    req = _coerce_request(request)
    cfg = _resolve_config(config)
    if transport is None:
        from .transport import OpenAITransport

        transport = OpenAITransport(cfg)

    run = asyncio.run(AttemptController(transport, cfg).run(req))

    output = run.explanation.to_storage_dict()
    _attach_envelope(
        output,
        pipeline="explain",
        config=cfg,
        metrics=run.metrics,
        attempts=len(run.attempts),
        synthesized=run.synthesized,
        attempt_trace=[a.to_dict() for a in run.attempts],
    )
    return output


def salvage_reply(
    raw_text: str,
    request: RequestLike,
    finish_reason: Union[FinishReason, str] = FinishReason.COMPLETE,
    *,
    config: Optional["ExplainConfig"] = None,
) -> dict[str, Any]:
    """Turn an already-received model reply into a validated explanation.

    Runs parse, normalize, validate and, on validation failure, the fallback
    synthesizer.  No transport is involved, so nothing is retried: a reply
    that looks cut off raises :class:`TruncatedReplyError`.
    """
    from .fallback import synthesize
    from .normalize import normalize_reply
    from .parsing import parse_reply
    from .validate import ValidationFailure, validate_record

    req = _coerce_request(request)
    cfg = _resolve_config(config)
    finish = FinishReason(finish_reason)

    t0 = time.perf_counter()
    if not (raw_text or "").strip():
        raise EmptyReplyError("stored reply is empty")
    try:
        parsed = parse_reply(raw_text, finish)
    except RetryableParseError as exc:
        raise TruncatedReplyError(f"stored reply looks cut off: {exc}") from exc

    normalized = normalize_reply(parsed, raw_text, req)
    result = validate_record(normalized)
    synthesized = isinstance(result, ValidationFailure)
    if synthesized:
        logger.warning(f"Stored reply failed validation, synthesizing: {result.summary()}")
        explanation = synthesize(normalized, req)
    else:
        explanation = result

    output = explanation.to_storage_dict()
    _attach_envelope(
        output,
        pipeline="salvage",
        config=cfg,
        duration_s=time.perf_counter() - t0,
        synthesized=synthesized,
    )
    return output
