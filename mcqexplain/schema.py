"""Canonical request and explanation records.

``StructuredExplanation`` is the only shape that leaves the pipeline.  Its
field constraints are the invariants every stored explanation satisfies; the
validator (:mod:`mcqexplain.validate`) and the fallback synthesizer
(:mod:`mcqexplain.fallback`) both lean on this model rather than repeating the
bounds.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StringConstraints, field_validator

SUMMARY_MIN_CHARS = 20
SUMMARY_MAX_CHARS = 300
REASON_MIN_CHARS = 10
MIN_OPTION_ANALYSIS = 2
MAX_KEY_POINTS = 5
MAX_MEMORY_AIDS = 3
MEMORY_AID_MIN_CHARS = 5
MEMORY_AID_MAX_CHARS = 120
MAX_CITATIONS = 5
CITATION_QUOTE_MIN_CHARS = 10
MAX_EVIDENCE = 5
DIFFICULTY_MIN = 1
DIFFICULTY_MAX = 5
DEFAULT_DIFFICULTY = 3

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def is_http_url(value: Any) -> bool:
    """Return True for an absolute ``http``/``https`` URL with a host."""
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


class MemoryAidType(str, Enum):
    ACRONYM = "ACRONYM"
    RHYMING = "RHYMING"
    RULE = "RULE"
    STORY = "STORY"
    MNEMONIC = "MNEMONIC"
    OTHER = "OTHER"


class Verdict(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class QuestionOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str


class Evidence(BaseModel):
    """A reference snippet supplied with the question."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    # Search integrations hand over "snippet"; stored evidence uses "quote".
    quote: str = Field(validation_alias=AliasChoices("quote", "snippet"))


class ExplanationRequest(BaseModel):
    """Input of one pipeline run; immutable for the run's duration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question_title: str = Field(alias="questionTitle")
    options: list[QuestionOption] = Field(default_factory=list)
    correct_answers: list[str] = Field(alias="correctAnswers", min_length=1)
    category: Optional[str] = None
    difficulty_hint: Optional[str] = Field(default=None, alias="difficulty")
    syllabus_path: Optional[str] = Field(default=None, alias="syllabusPath")
    evidence: list[Evidence] = Field(default_factory=list)

    @field_validator("evidence")
    @classmethod
    def _cap_evidence(cls, value: list[Evidence]) -> list[Evidence]:
        return value[:MAX_EVIDENCE]


# ---------------------------------------------------------------------------
# Canonical explanation
# ---------------------------------------------------------------------------


class _Canonical(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class OptionAnalysis(_Canonical):
    option: NonEmptyStr
    verdict: Verdict
    reason: str = Field(min_length=REASON_MIN_CHARS)


class MemoryAid(_Canonical):
    type: MemoryAidType
    text: str = Field(min_length=MEMORY_AID_MIN_CHARS, max_length=MEMORY_AID_MAX_CHARS)


class Citation(_Canonical):
    title: NonEmptyStr
    url: str
    quote: str = Field(min_length=CITATION_QUOTE_MIN_CHARS)

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        if not is_http_url(value):
            raise ValueError("url must be an absolute http(s) URL")
        return value


class StructuredExplanation(_Canonical):
    """Schema-valid explanation, ready for storage and rendering."""

    summary: str = Field(min_length=SUMMARY_MIN_CHARS, max_length=SUMMARY_MAX_CHARS)
    answer: list[NonEmptyStr] = Field(min_length=1)
    option_analysis: list[OptionAnalysis] = Field(
        alias="optionAnalysis", min_length=MIN_OPTION_ANALYSIS
    )
    key_points: list[NonEmptyStr] = Field(
        alias="keyPoints", min_length=1, max_length=MAX_KEY_POINTS
    )
    memory_aids: list[MemoryAid] = Field(
        default_factory=list, alias="memoryAids", max_length=MAX_MEMORY_AIDS
    )
    citations: list[Citation] = Field(default_factory=list, max_length=MAX_CITATIONS)
    difficulty: int = Field(default=DEFAULT_DIFFICULTY, ge=DIFFICULTY_MIN, le=DIFFICULTY_MAX)
    insufficiency: bool = False

    def to_storage_dict(self) -> dict[str, Any]:
        """camelCase, JSON-safe dict for persistence and UI rendering."""
        return self.model_dump(by_alias=True, mode="json")
