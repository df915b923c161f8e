"""Parser for replies written as a JSON object, with a single repair pass."""

from __future__ import annotations

import json
from typing import Any, Optional

from ..errors import MalformedGrammarError, RetryableParseError
from ..transport import FinishReason
from .record import IntermediateRecord


def repair_json_strings(source: str) -> str:
    """Escape raw newlines, carriage returns and tabs inside quoted strings.

    Models frequently emit multi-line string values without escaping them,
    which ``json.loads`` rejects.  Characters outside strings, and anything
    already escaped, are left untouched.
    """
    repaired: list[str] = []
    in_string = False
    escape_next = False

    for char in source:
        if escape_next:
            repaired.append(char)
            escape_next = False
            continue
        if char == "\\":
            repaired.append(char)
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            repaired.append(char)
            continue
        if in_string:
            if char in ("\n", "\r"):
                repaired.append("\\n")
                continue
            if char == "\t":
                repaired.append("\\t")
                continue
        repaired.append(char)

    return "".join(repaired)


def looks_truncated(text: str, finish_reason: Optional[FinishReason]) -> bool:
    """True when the provider reported truncation or an object was left open.

    Prose that never opened an object is not a truncated object.
    """
    if finish_reason is FinishReason.TRUNCATED:
        return True
    stripped = text.strip()
    return stripped.startswith("{") and not stripped.endswith("}")


def _as_record(parsed: Any) -> IntermediateRecord:
    if not isinstance(parsed, dict):
        raise MalformedGrammarError(
            f"expected a JSON object, got {type(parsed).__name__}"
        )
    return IntermediateRecord.from_mapping(parsed)


def parse_json_document(text: str, finish_reason: Optional[FinishReason] = None) -> IntermediateRecord:
    """Parse a JSON reply into an :class:`IntermediateRecord`.

    Raises
    ------
    RetryableParseError
        Direct parsing failed and the reply looks cut off.
    MalformedGrammarError
        Direct parsing and the single repair pass both failed, or the value
        is not an object.
    """
    try:
        return _as_record(json.loads(text))
    except json.JSONDecodeError as exc:
        first_error = exc

    if looks_truncated(text, finish_reason):
        raise RetryableParseError(f"JSON reply looks truncated: {first_error.msg}")

    repaired = repair_json_strings(text)
    if repaired == text:
        raise MalformedGrammarError(f"invalid JSON: {first_error.msg} (line {first_error.lineno})")

    try:
        return _as_record(json.loads(repaired))
    except json.JSONDecodeError as exc:
        raise MalformedGrammarError(f"invalid JSON after repair: {exc.msg} (line {exc.lineno})") from exc
