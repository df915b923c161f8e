"""Tolerant parser for the ``<explanation>`` tag grammar.

This is regular-expression scanning, not an XML parser: unknown tags,
comments, stray whitespace and attribute order are all tolerated, and any
section the model left out simply comes back missing.  The only hard failure
is a reply without the ``<explanation>`` container.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, Optional

from ..errors import MalformedGrammarError, RetryableParseError
from ..schema import MEMORY_AID_MIN_CHARS
from ..transport import FinishReason
from .record import IntermediateRecord

_FLAGS = re.IGNORECASE | re.DOTALL

_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_ROOT = re.compile(r"<explanation(?:\s[^>]*)?>(.*?)</explanation\s*>", _FLAGS)
_ROOT_OPEN = re.compile(r"<explanation(?:\s[^>]*)?>", re.IGNORECASE)
_ATTR = re.compile(r"""([A-Za-z_][-\w:.]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")

_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&amp;", "&"),
)


def decode_entities(value: str) -> str:
    """Decode the five predefined XML entity escapes (``&amp;`` last)."""
    for entity, char in _ENTITIES:
        value = value.replace(entity, char)
    return value


def _element_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(rf"<{tag}(\s[^>]*)?>(.*?)</{tag}\s*>", _FLAGS)


def _attributes(raw: Optional[str]) -> dict[str, str]:
    if not raw:
        return {}
    return {
        m.group(1).lower(): decode_entities(m.group(2) if m.group(2) is not None else m.group(3)).strip()
        for m in _ATTR.finditer(raw)
    }


def iter_elements(source: str, tag: str) -> Iterator[tuple[dict[str, str], str]]:
    """Yield ``(attributes, raw_inner_text)`` for every ``<tag>`` element."""
    for match in _element_pattern(tag).finditer(source):
        yield _attributes(match.group(1)), match.group(2)


def tag_text(source: str, tag: str) -> Optional[str]:
    """Decoded, trimmed text of the first ``<tag>`` element, or ``None``."""
    match = _element_pattern(tag).search(source)
    if match is None:
        return None
    return decode_entities(match.group(2).strip())


def _parse_answers(body: str) -> list[str]:
    answers: list[str] = []
    for attrs, _inner in iter_elements(body, "answer"):
        option_id = attrs.get("option", "")
        if option_id:
            answers.append(option_id)
    return answers


def _parse_option_analysis(body: str) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for attrs, inner in iter_elements(body, "item"):
        option_id = attrs.get("option", "") or "UNKNOWN"
        verdict = "correct" if attrs.get("verdict", "").lower() == "correct" else "wrong"
        reason = tag_text(inner, "reason") or f"No specific reasoning was given for option {option_id}."
        items.append({"option": option_id, "verdict": verdict, "reason": reason})
    return items


def _parse_memory_aids(body: str) -> list[dict[str, str]]:
    aids: list[dict[str, str]] = []
    for attrs, inner in iter_elements(body, "aid"):
        text = decode_entities(inner).strip()
        if len(text) < MEMORY_AID_MIN_CHARS:
            continue
        aids.append({"type": attrs.get("type", "OTHER"), "text": text})
    return aids


def _parse_citations(body: str) -> list[dict[str, str]]:
    # URL and length filtering happens in the normalizer
    return [
        {
            "title": tag_text(inner, "title") or "",
            "url": tag_text(inner, "url") or "",
            "quote": tag_text(inner, "quote") or "",
        }
        for _attrs, inner in iter_elements(body, "citation")
    ]


def _parse_insufficiency(body: str) -> Optional[bool]:
    raw = tag_text(body, "insufficiency")
    if raw is None:
        return None
    return raw.lower() == "true"


def parse_tag_document(text: str, finish_reason: Optional[FinishReason] = None) -> IntermediateRecord:
    """Parse an ``<explanation>`` document into an :class:`IntermediateRecord`.

    Raises
    ------
    RetryableParseError
        The container is missing because the reply was cut off (the provider
        reported truncation, or the opening tag has no closing tag).
    MalformedGrammarError
        The container is missing otherwise.
    """
    source = _COMMENT.sub("", text)
    root = _ROOT.search(source)
    if root is None:
        if finish_reason is FinishReason.TRUNCATED or _ROOT_OPEN.search(source):
            raise RetryableParseError("<explanation> document is not closed")
        raise MalformedGrammarError("missing <explanation> container")

    body = root.group(1)
    key_points = [decode_entities(inner).strip() for _attrs, inner in iter_elements(body, "point")]

    return IntermediateRecord(
        summary=tag_text(body, "summary"),
        answer=_parse_answers(body),
        option_analysis=_parse_option_analysis(body),
        key_points=[p for p in key_points if p],
        memory_aids=_parse_memory_aids(body),
        citations=_parse_citations(body),
        difficulty=tag_text(body, "difficulty"),
        insufficiency=_parse_insufficiency(body),
    )
