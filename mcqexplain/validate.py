"""Strict schema check of a normalized record."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError

from .normalize import parse_number
from .parsing.record import IntermediateRecord
from .schema import DEFAULT_DIFFICULTY, DIFFICULTY_MAX, DIFFICULTY_MIN, StructuredExplanation


class Issue(BaseModel):
    """One violated constraint."""

    field: str = Field(description="Dotted path of the offending field")
    detail: str = Field(description="Human-readable description")
    code: str = Field(description="Pydantic error type, e.g. too_short, missing")


class ValidationFailure(BaseModel):
    """Every violation found in a record, in schema field order."""

    issues: list[Issue] = Field(min_length=1)

    @property
    def first(self) -> Issue:
        return self.issues[0]

    def summary(self) -> str:
        head = f"{self.first.field}: {self.first.detail}"
        extra = len(self.issues) - 1
        return head + (f" (+{extra} more)" if extra else "")


def clamp_difficulty(raw: Any, default: int = DEFAULT_DIFFICULTY) -> int:
    """Round and clamp to the 1..5 scale; unparseable values give *default*."""
    number = parse_number(raw)
    if number is None:
        return default
    return min(DIFFICULTY_MAX, max(DIFFICULTY_MIN, int(round(number))))


def _issue_from_error(error: dict[str, Any]) -> Issue:
    loc = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
    return Issue(field=loc, detail=str(error.get("msg", "")), code=str(error.get("type", "")))


def _storage_key(name: str) -> str:
    field = StructuredExplanation.model_fields.get(name)
    return (field.alias if field is not None else None) or name


def validate_record(record: IntermediateRecord) -> Union[StructuredExplanation, ValidationFailure]:
    """Return the canonical record, or a :class:`ValidationFailure` listing every issue.

    Issue paths use the storage (camelCase) field names.
    """
    payload = {_storage_key(name): value for name, value in record.to_payload().items()}
    payload["difficulty"] = clamp_difficulty(payload.get("difficulty"))
    try:
        return StructuredExplanation.model_validate(payload)
    except ValidationError as exc:
        return ValidationFailure(issues=[_issue_from_error(err) for err in exc.errors()])
