# tests/test_schema.py
"""Tests for the request and canonical explanation models."""

import pytest
from pydantic import ValidationError


def _valid_payload(**overrides):
    payload = {
        "summary": "Nitrogen makes up about 78 percent of dry air.",
        "answer": ["B"],
        "optionAnalysis": [
            {"option": "A", "verdict": "wrong", "reason": "Oxygen is only about 21 percent."},
            {"option": "B", "verdict": "correct", "reason": "Nitrogen dominates at 78 percent."},
        ],
        "keyPoints": ["Dry air is mostly nitrogen."],
    }
    payload.update(overrides)
    return payload


class TestExplanationRequest:
    def test_camel_case_aliases(self, request_data):
        from mcqexplain.schema import ExplanationRequest

        req = ExplanationRequest.model_validate(request_data)
        assert req.question_title.startswith("Which gas")
        assert req.correct_answers == ["B"]
        assert req.difficulty_hint == "2"
        assert req.syllabus_path == "Science > Earth > Atmosphere"

    def test_snake_case_names_accepted(self):
        from mcqexplain.schema import ExplanationRequest

        req = ExplanationRequest(question_title="Q?", correct_answers=["A"])
        assert req.options == []

    def test_requires_a_correct_answer(self, request_data):
        from mcqexplain.schema import ExplanationRequest

        request_data["correctAnswers"] = []
        with pytest.raises(ValidationError):
            ExplanationRequest.model_validate(request_data)

    def test_evidence_capped_at_five(self, request_data):
        from mcqexplain.schema import ExplanationRequest

        request_data["evidence"] = [
            {"title": f"Source {i}", "url": f"https://example.org/{i}", "snippet": "Some quoted text."}
            for i in range(8)
        ]
        req = ExplanationRequest.model_validate(request_data)
        assert len(req.evidence) == 5
        assert req.evidence[0].quote == "Some quoted text."

    def test_frozen(self, sample_request):
        with pytest.raises(ValidationError):
            sample_request.question_title = "changed"


class TestIsHttpUrl:
    @pytest.mark.parametrize(
        "url",
        ["https://example.org/a", "http://example.org", "HTTPS://EXAMPLE.ORG/path?q=1"],
    )
    def test_accepts_absolute_http(self, url):
        from mcqexplain.schema import is_http_url

        assert is_http_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "javascript:alert(1)",
            "/relative/path",
            "example.org/page",
            "ftp://example.org/file",
            "https://",
            "https://exa mple.org",
            "",
            None,
            42,
        ],
    )
    def test_rejects_everything_else(self, url):
        from mcqexplain.schema import is_http_url

        assert not is_http_url(url)


class TestStructuredExplanation:
    def test_valid_payload(self):
        from mcqexplain.schema import StructuredExplanation, Verdict

        exp = StructuredExplanation.model_validate(_valid_payload())
        assert exp.difficulty == 3
        assert exp.insufficiency is False
        assert exp.option_analysis[1].verdict is Verdict.CORRECT

    def test_summary_bounds(self):
        from mcqexplain.schema import StructuredExplanation

        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(_valid_payload(summary="Too short."))
        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(_valid_payload(summary="x" * 301))

    def test_summary_whitespace_does_not_count(self):
        from mcqexplain.schema import StructuredExplanation

        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(_valid_payload(summary="   short summary    " + " " * 30))

    def test_needs_two_option_entries(self):
        from mcqexplain.schema import StructuredExplanation

        payload = _valid_payload()
        payload["optionAnalysis"] = payload["optionAnalysis"][:1]
        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(payload)

    def test_blank_answer_rejected(self):
        from mcqexplain.schema import StructuredExplanation

        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(_valid_payload(answer=["  "]))

    def test_key_points_capped(self):
        from mcqexplain.schema import StructuredExplanation

        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(_valid_payload(keyPoints=[f"point {i}" for i in range(6)]))

    def test_citation_url_must_be_http(self):
        from mcqexplain.schema import StructuredExplanation

        bad = [{"title": "T", "url": "javascript:alert(1)", "quote": "A long enough quote."}]
        with pytest.raises(ValidationError):
            StructuredExplanation.model_validate(_valid_payload(citations=bad))

    def test_storage_dict_uses_camel_case(self):
        from mcqexplain.schema import StructuredExplanation

        data = StructuredExplanation.model_validate(_valid_payload()).to_storage_dict()
        assert set(data) == {
            "summary",
            "answer",
            "optionAnalysis",
            "keyPoints",
            "memoryAids",
            "citations",
            "difficulty",
            "insufficiency",
        }
        assert data["optionAnalysis"][0]["verdict"] == "wrong"
