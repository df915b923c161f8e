# tests/conftest.py
"""Shared fixtures: a sample question, a scripted transport and reply texts."""

from __future__ import annotations

import pytest

VALID_TAG_REPLY = """<explanation>
  <summary>Nitrogen makes up about 78 percent of dry air.</summary>
  <answers>
    <answer option="B">Nitrogen</answer>
  </answers>
  <optionAnalysis>
    <item option="A" verdict="wrong">
      <reason>Oxygen is only about 21 percent of the atmosphere.</reason>
    </item>
    <item option="B" verdict="correct">
      <reason>Nitrogen is the dominant gas at roughly 78 percent.</reason>
    </item>
    <item option="C" verdict="wrong">
      <reason>Argon is below one percent of dry air.</reason>
    </item>
  </optionAnalysis>
  <keyPoints>
    <point>Dry air is roughly 78% nitrogen and 21% oxygen.</point>
    <point>Argon is the third most common gas.</point>
  </keyPoints>
  <memoryAids>
    <aid type="mnemonic">N for Nearly everything you breathe</aid>
  </memoryAids>
  <citations>
    <citation>
      <title>Atmosphere of Earth</title>
      <url>https://en.wikipedia.org/wiki/Atmosphere_of_Earth</url>
      <quote>Nitrogen makes up 78.08 percent of dry air by volume.</quote>
    </citation>
  </citations>
  <difficulty>2</difficulty>
  <insufficiency>false</insufficiency>
</explanation>"""


class FakeTransport:
    """Transport that replays scripted replies (or raises scripted errors)."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, system_text, user_text, token_budget):
        self.calls.append(
            {"system": system_text, "user": user_text, "token_budget": token_budget}
        )
        if not self.replies:
            raise AssertionError("transport called more often than scripted")
        item = self.replies.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def request_data():
    return {
        "questionTitle": "Which gas makes up most of Earth's atmosphere?",
        "options": [
            {"id": "A", "text": "Oxygen"},
            {"id": "B", "text": "Nitrogen"},
            {"id": "C", "text": "Argon"},
        ],
        "correctAnswers": ["B"],
        "difficulty": "2",
        "syllabusPath": "Science > Earth > Atmosphere",
    }


@pytest.fixture
def sample_request(request_data):
    from mcqexplain.schema import ExplanationRequest

    return ExplanationRequest.model_validate(request_data)


@pytest.fixture
def valid_tag_reply():
    return VALID_TAG_REPLY


@pytest.fixture
def make_reply():
    """Build a RawModelReply: ``make_reply(text, "truncated")``."""
    from mcqexplain.transport import FinishReason, RawModelReply

    def _make(text="", finish="complete", usage=None):
        return RawModelReply(
            text=text,
            finish_reason=FinishReason(finish),
            usage=usage if usage is not None else {"prompt_tokens": 100, "completion_tokens": 50},
        )

    return _make


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def config(tmp_path):
    from mcqexplain.config import ExplainConfig

    return ExplainConfig(api_key="sk-test", home_dir=tmp_path / "home")


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo any setup_logging() call made by a test."""
    import logging

    logger = logging.getLogger("mcqexplain")
    handlers = list(logger.handlers)
    filters = list(logger.filters)
    level, propagate = logger.level, logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.filters[:] = filters
    logger.setLevel(level)
    logger.propagate = propagate
