"""Loosely-typed parse result shared by both grammar parsers."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

# Canonical field -> accepted keys in a JSON reply, first match wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "summary": ("summary",),
    "answer": ("answer", "answers"),
    "option_analysis": ("optionAnalysis", "option_analysis"),
    "key_points": ("keyPoints", "key_points"),
    "memory_aids": ("memoryAids", "memory_aids"),
    "citations": ("citations",),
    "difficulty": ("difficulty",),
    "insufficiency": ("insufficiency",),
    "explanation": ("explanation", "reasoning", "rationale"),
}


@dataclass(frozen=True)
class IntermediateRecord:
    """Every field may be missing (``None``), wrongly typed or out of range.

    ``explanation`` holds free prose the model wrote instead of, or next to,
    the structured fields; only the fallback synthesizer reads it.
    """

    summary: Any = None
    answer: Any = None
    option_analysis: Any = None
    key_points: Any = None
    memory_aids: Any = None
    citations: Any = None
    difficulty: Any = None
    insufficiency: Any = None
    explanation: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IntermediateRecord":
        values: dict[str, Any] = {}
        for field_name, keys in FIELD_ALIASES.items():
            for key in keys:
                if key in data:
                    values[field_name] = data[key]
                    break
        return cls(**values)

    def to_payload(self) -> dict[str, Any]:
        """Present fields only, keyed by canonical field name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "explanation" and getattr(self, f.name) is not None
        }

    def with_changes(self, **changes: Any) -> "IntermediateRecord":
        return replace(self, **changes)
