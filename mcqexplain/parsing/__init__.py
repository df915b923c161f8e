"""Reply parsing: grammar detection plus the tag and JSON parsers."""

from .detect import Grammar, clean_reply_text, detect_grammar, parse_reply
from .json_grammar import parse_json_document, repair_json_strings
from .record import IntermediateRecord
from .tag_grammar import decode_entities, parse_tag_document

__all__ = [
    "Grammar",
    "IntermediateRecord",
    "clean_reply_text",
    "decode_entities",
    "detect_grammar",
    "parse_json_document",
    "parse_reply",
    "parse_tag_document",
    "repair_json_strings",
]
