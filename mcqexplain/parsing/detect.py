"""Grammar detection and single-point dispatch to the two reply parsers."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from .json_grammar import parse_json_document
from .record import IntermediateRecord
from .tag_grammar import parse_tag_document
from ..transport import FinishReason

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_TRAILING_FENCE = re.compile(r"```$")


class Grammar(str, Enum):
    TAG = "tag"
    JSON = "json"


def clean_reply_text(content: str) -> str:
    """Trim whitespace and surrounding Markdown code-fence markers."""
    sanitized = (content or "").strip()
    if sanitized.startswith("```"):
        sanitized = _LEADING_FENCE.sub("", sanitized)
        sanitized = _TRAILING_FENCE.sub("", sanitized)
    # Leftover backticks and whitespace may alternate at the edges.
    stripped = sanitized.strip().strip("`")
    while stripped != sanitized:
        sanitized, stripped = stripped, stripped.strip().strip("`")
    return sanitized


def detect_grammar(text: str) -> Grammar:
    """``TAG`` when the cleaned reply opens with ``<``, otherwise ``JSON``."""
    return Grammar.TAG if clean_reply_text(text).startswith("<") else Grammar.JSON


def parse_reply(raw_text: str, finish_reason: Optional[FinishReason] = None) -> IntermediateRecord:
    """Parse a raw reply with whichever grammar it is written in.

    Raises
    ------
    RetryableParseError
        The reply looks cut off; worth re-asking with a larger budget.
    MalformedGrammarError
        The reply is not a usable document in either grammar.
    """
    text = clean_reply_text(raw_text)
    if detect_grammar(text) is Grammar.TAG:
        return parse_tag_document(text, finish_reason)
    return parse_json_document(text, finish_reason)
