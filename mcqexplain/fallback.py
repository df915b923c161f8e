"""Deterministic salvage of a reply that parsed but failed validation.

``synthesize`` mines whatever usable text the record holds and fills the
rest from the request itself, so that every field lands inside the schema's
bounds.  Memory aids and citations are never invented.  The result is
re-validated; a failure there is a bug in this module, not in the data.
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import SynthesisAssertionError
from .normalize import normalize_record, parse_number
from .parsing.record import IntermediateRecord
from .schema import (
    DEFAULT_DIFFICULTY,
    MAX_KEY_POINTS,
    MIN_OPTION_ANALYSIS,
    REASON_MIN_CHARS,
    SUMMARY_MAX_CHARS,
    SUMMARY_MIN_CHARS,
    ExplanationRequest,
    StructuredExplanation,
    Verdict,
)
from .utils.logging import get_logger
from .validate import ValidationFailure, clamp_difficulty, validate_record

logger = get_logger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[。！？!?.])\s*")

KEY_POINT_MAX_CHARS = 120
KEY_POINT_MIN_CHARS = 5
MAX_FALLBACK_SENTENCE_POINTS = 3

PADDING_REASON = (
    "The model reply covered only part of the fields; this entry was added to complete the structure."
)
MISSING_KEY_POINTS = (
    "The model reply contained no key points; this overview is based on the question and its standard answer."
)


def split_sentences(text: str) -> list[str]:
    return [part.strip() for part in _SENTENCE_BOUNDARY.split(text or "") if part.strip()]


def _fit_summary(candidate: Optional[str]) -> Optional[str]:
    if not candidate:
        return None
    fitted = candidate.strip()[:SUMMARY_MAX_CHARS].strip()
    return fitted if len(fitted) >= SUMMARY_MIN_CHARS else None


def _resolve_summary(
    summary: str, sentences: list[str], explanation: str, request: ExplanationRequest
) -> str:
    for candidate in (summary, sentences[0] if sentences else None, explanation):
        fitted = _fit_summary(candidate)
        if fitted:
            return fitted
    answers = ", ".join(a.strip() for a in request.correct_answers if a.strip()) or "not provided"
    generic = (
        "The model reply had no structured summary; read the question together "
        f"with the standard answer: {answers}."
    )
    return generic[:SUMMARY_MAX_CHARS]


def _resolve_answers(answer: list[str], request: ExplanationRequest) -> list[str]:
    if answer:
        return list(answer)
    from_request = [a.strip() for a in request.correct_answers if a and a.strip()]
    if from_request:
        return from_request
    first = request.options[0] if request.options else None
    fallback = (first.id.strip() or first.text.strip()) if first else ""
    return [fallback or "A"]


def _reason(candidate: Optional[str], generic: str) -> str:
    text = (candidate or "").strip()
    return text if len(text) >= REASON_MIN_CHARS else generic


def _option_analysis(
    request: ExplanationRequest, answers: list[str], sentences: list[str], explanation: str
) -> list[dict[str, str]]:
    answer_set = set(answers)
    entries: list[dict[str, str]] = []
    for index, option in enumerate(request.options):
        option_id = option.id.strip() or f"Option {index + 1}"
        is_correct = (
            option.id in answer_set or option_id in answer_set or option.text.strip() in answer_set
        )
        if is_correct:
            reason = _reason(
                sentences[0] if sentences else explanation,
                f"The standard answer marks option {option_id} as correct.",
            )
        else:
            reason = (
                "The explanation supports the standard answer and gives no evidence "
                f"for option {option_id}."
            )
        entries.append(
            {
                "option": option_id,
                "verdict": (Verdict.CORRECT if is_correct else Verdict.WRONG).value,
                "reason": reason,
            }
        )

    while len(entries) < MIN_OPTION_ANALYSIS:
        entries.append(
            {
                "option": f"Padding {len(entries) + 1}",
                "verdict": Verdict.WRONG.value,
                "reason": PADDING_REASON,
            }
        )
    return entries


def _key_points(key_points: list[str], sentences: list[str], explanation: str) -> list[str]:
    kept = [p[:KEY_POINT_MAX_CHARS].strip() for p in key_points if len(p.strip()) > KEY_POINT_MIN_CHARS]
    if kept:
        return kept[:MAX_KEY_POINTS]
    if sentences:
        return [s[:KEY_POINT_MAX_CHARS].strip() for s in sentences[:MAX_FALLBACK_SENTENCE_POINTS]]
    if explanation:
        return [explanation[:KEY_POINT_MAX_CHARS].strip()]
    return [MISSING_KEY_POINTS]


def _difficulty(raw: object, request: ExplanationRequest) -> int:
    if parse_number(raw) is not None:
        return clamp_difficulty(raw)
    return clamp_difficulty(request.difficulty_hint, default=DEFAULT_DIFFICULTY)


def synthesize(record: IntermediateRecord, request: ExplanationRequest) -> StructuredExplanation:
    """Build a schema-valid explanation from *record* and *request*. Always succeeds.

    Raises
    ------
    SynthesisAssertionError
        Only if the synthesized record fails validation, which would mean the
        rules above no longer match the schema.
    """
    normalized = normalize_record(record)
    explanation = normalized.explanation or ""
    sentences = split_sentences(explanation)
    answers = _resolve_answers(normalized.answer, request)

    synthesized = IntermediateRecord(
        summary=_resolve_summary(normalized.summary, sentences, explanation, request),
        answer=answers,
        option_analysis=_option_analysis(request, answers, sentences, explanation),
        key_points=_key_points(normalized.key_points, sentences, explanation),
        memory_aids=[],
        citations=[],
        difficulty=_difficulty(normalized.difficulty, request),
        insufficiency=not sentences,
    )

    result = validate_record(synthesized)
    if isinstance(result, ValidationFailure):
        logger.error(f"Fallback synthesis produced an invalid record: {result.issues}")
        raise SynthesisAssertionError(result.summary())
    return result
