"""Coerce a parsed reply towards the canonical schema's shapes.

The normalizer never rejects a record: it trims, array-ifies and
canonicalizes what it can and leaves everything else for the validator to
judge.  Citations are the exception: entries that cannot be stored are
dropped here, and only here.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from .parsing.detect import Grammar, detect_grammar
from .parsing.record import IntermediateRecord
from .schema import CITATION_QUOTE_MIN_CHARS, ExplanationRequest, MemoryAidType, Verdict, is_http_url

# Commas (ASCII, full-width, ideographic enumeration), semicolons, slashes, whitespace.
_ANSWER_DELIMITERS = re.compile(r"[,，、;；/\s]+")

_VERDICT_SPELLINGS: dict[str, Verdict] = {
    "correct": Verdict.CORRECT,
    "right": Verdict.CORRECT,
    "true": Verdict.CORRECT,
    "yes": Verdict.CORRECT,
    "正确": Verdict.CORRECT,
    "wrong": Verdict.WRONG,
    "incorrect": Verdict.WRONG,
    "false": Verdict.WRONG,
    "no": Verdict.WRONG,
    "错误": Verdict.WRONG,
}

_ANSWER_ITEM_KEYS = ("option", "id")
_KEY_POINT_ITEM_KEYS = ("text", "point", "content")

# Containment fallbacks, checked in order after an exact match fails.
_MEMORY_AID_HINTS: tuple[tuple[str, MemoryAidType], ...] = (
    ("ACRONYM", MemoryAidType.ACRONYM),
    ("RHYME", MemoryAidType.RHYMING),
    ("RULE", MemoryAidType.RULE),
    ("STORY", MemoryAidType.STORY),
    ("MNEMONIC", MemoryAidType.MNEMONIC),
)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    """Trimmed text of a string or number; containers, booleans and None give ``""``."""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip() if _is_scalar(value) else ""


def _item_text(value: Any, keys: tuple[str, ...]) -> str:
    # Objects contribute their first scalar-valued key, never their repr.
    if isinstance(value, dict):
        for key in keys:
            if _is_scalar(value.get(key)):
                return _text(value[key])
        return ""
    return _text(value)


def normalize_summary(value: Any) -> str:
    if isinstance(value, str):
        return value
    return str(value) if _is_scalar(value) else ""


def normalize_answer(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        parts = [_item_text(item, _ANSWER_ITEM_KEYS) for item in value]
    elif isinstance(value, str):
        parts = [part.strip() for part in _ANSWER_DELIMITERS.split(value)]
    else:
        return []

    seen: set[str] = set()
    out: list[str] = []
    for part in parts:
        if part and part not in seen:
            seen.add(part)
            out.append(part)
    return out


def normalize_verdict(value: Any) -> Any:
    """Map common verdict spellings onto ``correct``/``wrong``.

    Unrecognised spellings are returned unchanged so the validator reports
    them rather than the normalizer guessing.
    """
    if isinstance(value, bool):
        return (Verdict.CORRECT if value else Verdict.WRONG).value
    probe = _text(value).lower()
    mapped = _VERDICT_SPELLINGS.get(probe)
    return mapped.value if mapped is not None else value


def normalize_option_analysis(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    out: list[Any] = []
    for item in value:
        if isinstance(item, dict):
            entry = dict(item)
            entry["option"] = _text(item.get("option"))
            entry["verdict"] = normalize_verdict(item.get("verdict"))
            entry["reason"] = _text(item.get("reason"))
            out.append(entry)
        else:
            out.append(item)
    return out


def normalize_key_points(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_item_text(item, _KEY_POINT_ITEM_KEYS) for item in value) if text]


def normalize_memory_aid_type(raw_type: Any) -> MemoryAidType:
    probe = _text(raw_type).upper()
    try:
        return MemoryAidType(probe)
    except ValueError:
        pass
    for hint, aid_type in _MEMORY_AID_HINTS:
        if hint in probe:
            return aid_type
    return MemoryAidType.OTHER


def normalize_memory_aids(value: Any) -> list[dict[str, str]]:
    if not isinstance(value, list):
        return []
    out: list[dict[str, str]] = []
    for item in value:
        if isinstance(item, str):
            text, aid_type = item.strip(), MemoryAidType.OTHER
        elif isinstance(item, dict):
            raw_text = item.get("text") if isinstance(item.get("text"), str) else item.get("content")
            text = raw_text.strip() if isinstance(raw_text, str) else ""
            aid_type = normalize_memory_aid_type(item.get("type"))
        else:
            continue
        if text:
            out.append({"type": aid_type.value, "text": text})
    return out


def normalize_citations(value: Any) -> list[dict[str, str]]:
    if not isinstance(value, list):
        return []
    out: list[dict[str, str]] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        title = item.get("title").strip() if isinstance(item.get("title"), str) else ""
        quote = item.get("quote").strip() if isinstance(item.get("quote"), str) else ""
        url = item.get("url").strip() if isinstance(item.get("url"), str) else ""
        if not title or len(quote) < CITATION_QUOTE_MIN_CHARS or not is_http_url(url):
            continue
        out.append({"title": title, "url": url, "quote": quote})
    return out


def parse_number(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else ``None``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_insufficiency(value: Any) -> Any:
    if isinstance(value, str):
        probe = value.strip().lower()
        if probe in {"true", "yes", "1"}:
            return True
        if probe in {"false", "no", "0", ""}:
            return False
    return value


def normalize_record(record: IntermediateRecord) -> IntermediateRecord:
    """Return a copy of *record* with every field in canonical shape where possible."""
    explanation = _text(record.explanation) if isinstance(record.explanation, str) else None
    return IntermediateRecord(
        summary=normalize_summary(record.summary),
        answer=normalize_answer(record.answer),
        option_analysis=normalize_option_analysis(record.option_analysis),
        key_points=normalize_key_points(record.key_points),
        memory_aids=normalize_memory_aids(record.memory_aids),
        citations=normalize_citations(record.citations),
        difficulty=parse_number(record.difficulty),
        insufficiency=normalize_insufficiency(record.insufficiency),
        explanation=explanation or None,
    )


def normalize_reply(record: IntermediateRecord, raw_text: str, request: ExplanationRequest) -> IntermediateRecord:
    """Normalize a parsed reply in the context of its request.

    A tag document that names no ``<answer>`` takes the request's answer key,
    so the rest of a well-formed reply survives validation.  JSON replies get
    no such default.
    """
    normalized = normalize_record(record)
    if not normalized.answer and detect_grammar(raw_text) is Grammar.TAG:
        return normalized.with_changes(answer=normalize_answer(request.correct_answers))
    return normalized
