"""Attempt/retry state machine around a single explanation request.

Each attempt runs prompt -> transport -> inspect -> parse -> normalize ->
validate.  Empty and truncated replies are retried (truncation with a larger
token budget); a record that parses but fails validation is salvaged by the
fallback synthesizer instead of being retried.  Transport failures and
unparseable replies end the run.

The only suspension point is ``await transport.complete(...)``, so unrelated
requests can share an event loop::

    results = await asyncio.gather(*(explain(r, transport, cfg) for r in requests))
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .errors import (
    EmptyReplyError,
    MalformedGrammarError,
    PipelineError,
    RetryableParseError,
    TransportError,
    TruncatedReplyError,
)
from .fallback import synthesize
from .metrics import PipelineMetrics, track_step
from .normalize import normalize_reply
from .parsing.detect import parse_reply
from .prompts import PromptOptions, build_prompt
from .schema import ExplanationRequest, StructuredExplanation
from .transport import FinishReason, RawModelReply, Transport
from .utils.logging import (
    get_logger,
    log_attempt_outcome,
    log_attempt_start,
    log_llm_response,
    log_prompt,
    log_run_complete,
)
from .validate import ValidationFailure, validate_record

if TYPE_CHECKING:
    from .config import ExplainConfig

logger = get_logger(__name__)


class AttemptOutcome(str, Enum):
    VALIDATED = "validated"
    SYNTHESIZED = "synthesized"
    RETRY_EMPTY = "retry_empty"
    RETRY_TRUNCATED = "retry_truncated"
    RETRY_PARSE = "retry_parse"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptState:
    """Retry bookkeeping for one request. Never shared between requests."""

    attempt_number: int
    remaining_retries: int
    token_budget: int
    force_default_prompt: bool = False

    @classmethod
    def initial(cls, config: "ExplainConfig") -> "AttemptState":
        return cls(
            attempt_number=1,
            remaining_retries=config.retry_budget,
            token_budget=min(config.initial_max_tokens, config.max_token_ceiling),
        )

    @property
    def can_retry(self) -> bool:
        return self.remaining_retries > 0

    def retry(self) -> "AttemptState":
        """Next attempt with the same budget and the default prompt."""
        return replace(
            self,
            attempt_number=self.attempt_number + 1,
            remaining_retries=self.remaining_retries - 1,
            force_default_prompt=True,
        )

    def escalate(self, step: int, ceiling: int) -> "AttemptState":
        """Next attempt with the budget raised by *step*, capped at *ceiling*."""
        return replace(self.retry(), token_budget=min(self.token_budget + step, ceiling))


@dataclass(frozen=True)
class AttemptRecord:
    """Diagnostic trace entry for one attempt."""

    number: int
    token_budget: int
    force_default_prompt: bool
    outcome: AttemptOutcome
    finish_reason: Optional[FinishReason] = None
    usage: dict[str, int] = field(default_factory=dict)
    detail: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "number": self.number,
            "token_budget": self.token_budget,
            "force_default_prompt": self.force_default_prompt,
            "outcome": self.outcome.value,
            "finish_reason": self.finish_reason.value if self.finish_reason else None,
            "usage": dict(self.usage),
            "detail": self.detail,
        }


@dataclass
class ExplanationRun:
    """Result of a successful run plus its attempt trace."""

    explanation: StructuredExplanation
    attempts: list[AttemptRecord]
    synthesized: bool
    metrics: PipelineMetrics

    @property
    def duration_s(self) -> float:
        return self.metrics.total_duration_s


class AttemptController:
    """Drive one request through the attempt loop.

    Parameters
    ----------
    transport:
        Anything implementing :class:`~mcqexplain.transport.Transport`.
    config:
        Read-only settings; supplies the retry policy and prompt switches.
    """

    def __init__(self, transport: Transport, config: "ExplainConfig") -> None:
        self.transport = transport
        self.config = config

    def prompt_options(self, state: AttemptState) -> PromptOptions:
        return PromptOptions.from_config(self.config, force_default=state.force_default_prompt)

    async def run(self, request: ExplanationRequest) -> ExplanationRun:
        attempts: list[AttemptRecord] = []
        metrics = PipelineMetrics()
        t0 = time.perf_counter()
        try:
            explanation, synthesized = await self._loop(request, attempts, metrics)
        except PipelineError:
            log_run_complete(
                logger,
                request.question_title,
                success=False,
                attempts=len(attempts),
                total_duration=time.perf_counter() - t0,
            )
            raise

        log_run_complete(
            logger,
            request.question_title,
            success=True,
            attempts=len(attempts),
            synthesized=synthesized,
            total_duration=time.perf_counter() - t0,
        )
        return ExplanationRun(
            explanation=explanation,
            attempts=attempts,
            synthesized=synthesized,
            metrics=metrics,
        )

    async def _call_transport(
        self, state: AttemptState, system_text: str, user_text: str, metrics: PipelineMetrics
    ) -> RawModelReply:
        with track_step(metrics, f"Attempt {state.attempt_number}") as step:
            try:
                reply = await self.transport.complete(system_text, user_text, state.token_budget)
            except PipelineError:
                raise
            except Exception as exc:
                raise TransportError("unknown", detail=str(exc)) from exc
            step.add_usage(reply.usage)
        return reply

    async def _loop(
        self,
        request: ExplanationRequest,
        attempts: list[AttemptRecord],
        metrics: PipelineMetrics,
    ) -> tuple[StructuredExplanation, bool]:
        cfg = self.config
        state = AttemptState.initial(cfg)

        def record(outcome: AttemptOutcome, reply: Optional[RawModelReply] = None, detail: str = "") -> None:
            attempts.append(
                AttemptRecord(
                    number=state.attempt_number,
                    token_budget=state.token_budget,
                    force_default_prompt=state.force_default_prompt,
                    outcome=outcome,
                    finish_reason=reply.finish_reason if reply else None,
                    usage=dict(reply.usage) if reply else {},
                    detail=detail,
                )
            )
            log_attempt_outcome(logger, state.attempt_number, outcome.value, detail or None)

        while True:
            log_attempt_start(logger, state.attempt_number, state.token_budget, state.force_default_prompt)
            system_text, user_text = build_prompt(request, self.prompt_options(state))
            log_prompt(logger, "system", system_text)
            log_prompt(logger, "user", user_text)

            try:
                reply = await self._call_transport(state, system_text, user_text, metrics)
            except TransportError as exc:
                record(AttemptOutcome.FAILED, detail=str(exc))
                raise
            log_llm_response(logger, f"attempt {state.attempt_number}", reply.text)

            if reply.finish_reason is FinishReason.TRUNCATED:
                if state.can_retry:
                    record(AttemptOutcome.RETRY_TRUNCATED, reply, "reply hit the token limit")
                    state = state.escalate(cfg.token_step, cfg.max_token_ceiling)
                    continue
                record(AttemptOutcome.FAILED, reply, "truncated with no retries left")
                raise TruncatedReplyError(f"reply still truncated at max_tokens={state.token_budget}")

            if reply.is_empty:
                if state.can_retry:
                    record(AttemptOutcome.RETRY_EMPTY, reply, "empty reply")
                    state = state.retry()
                    continue
                record(AttemptOutcome.FAILED, reply, "empty with no retries left")
                raise EmptyReplyError("provider returned no text")

            try:
                parsed = parse_reply(reply.text, reply.finish_reason)
            except RetryableParseError as exc:
                if state.can_retry:
                    record(AttemptOutcome.RETRY_PARSE, reply, str(exc))
                    state = state.escalate(cfg.token_step, cfg.max_token_ceiling)
                    continue
                record(AttemptOutcome.FAILED, reply, str(exc))
                raise TruncatedReplyError(f"reply looked cut off: {exc}") from exc
            except MalformedGrammarError as exc:
                record(AttemptOutcome.FAILED, reply, str(exc))
                raise

            normalized = normalize_reply(parsed, reply.text, request)
            result = validate_record(normalized)
            if not isinstance(result, ValidationFailure):
                record(AttemptOutcome.VALIDATED, reply)
                return result, False

            logger.warning(f"Validation failed ({len(result.issues)} issues): {result.summary()}")
            try:
                explanation = synthesize(normalized, request)
            except PipelineError as exc:
                record(AttemptOutcome.FAILED, reply, str(exc))
                raise
            record(AttemptOutcome.SYNTHESIZED, reply, result.summary())
            return explanation, True


async def explain(
    request: ExplanationRequest,
    transport: Transport,
    config: "ExplainConfig",
) -> StructuredExplanation:
    """Produce a validated explanation for *request* or raise a :class:`PipelineError`."""
    run = await AttemptController(transport, config).run(request)
    return run.explanation
