# tests/test_sdk.py
"""Tests for the synchronous SDK entry points."""

import pytest


class TestExplainQuestion:
    def test_returns_storage_dict_with_envelope(
        self, config, request_data, valid_tag_reply, make_reply, fake_transport
    ):
        from mcqexplain.sdk import explain_question

        transport = fake_transport([make_reply(valid_tag_reply)])
        result = explain_question(request_data, config=config, transport=transport)

        assert result["answer"] == ["B"]
        assert result["optionAnalysis"][1]["verdict"] == "correct"
        meta = result["_mcqexplain"]
        assert meta["pipeline"] == "explain"
        assert meta["attempts"] == 1
        assert meta["fallback"] is False
        assert meta["tokens"] == {"input": 100, "output": 50}
        assert meta["attempt_trace"][0]["outcome"] == "validated"

    def test_trace_records_retries(self, config, sample_request, valid_tag_reply, make_reply, fake_transport):
        from mcqexplain.sdk import explain_question

        transport = fake_transport(
            [make_reply("<explanation>", "truncated"), make_reply(valid_tag_reply)]
        )
        result = explain_question(sample_request, config=config, transport=transport)
        trace = result["_mcqexplain"]["attempt_trace"]
        assert [t["token_budget"] for t in trace] == [1500, 2012]
        assert trace[0]["finish_reason"] == "truncated"
        assert result["_mcqexplain"]["tokens"] == {"input": 200, "output": 100}

    def test_pipeline_error_propagates(self, config, request_data, make_reply, fake_transport):
        from mcqexplain.errors import MalformedGrammarError
        from mcqexplain.sdk import explain_question

        transport = fake_transport([make_reply("plain prose answer")])
        with pytest.raises(MalformedGrammarError):
            explain_question(request_data, config=config, transport=transport)

    def test_invalid_request_rejected(self, config, fake_transport):
        from pydantic import ValidationError

        from mcqexplain.sdk import explain_question

        with pytest.raises(ValidationError):
            explain_question({"questionTitle": "Q?"}, config=config, transport=fake_transport([]))


class TestSalvageReply:
    def test_valid_reply(self, config, request_data, valid_tag_reply):
        from mcqexplain.sdk import salvage_reply

        result = salvage_reply(valid_tag_reply, request_data, config=config)
        assert result["answer"] == ["B"]
        assert result["_mcqexplain"]["pipeline"] == "salvage"
        assert result["_mcqexplain"]["fallback"] is False

    def test_tag_reply_without_answers(self, config, request_data, valid_tag_reply):
        import re

        from mcqexplain.sdk import salvage_reply

        reply = re.sub(r"<answers>.*?</answers>", "", valid_tag_reply, flags=re.S)
        result = salvage_reply(reply, request_data, config=config)
        assert result["_mcqexplain"]["fallback"] is False
        assert result["answer"] == ["B"]
        assert result["memoryAids"]

    def test_partial_reply_synthesized(self, config, request_data):
        from mcqexplain.sdk import salvage_reply

        result = salvage_reply('{"answer": "B", "explanation": "Nitrogen is about 78 percent of air."}', request_data, config=config)
        assert result["_mcqexplain"]["fallback"] is True
        assert result["summary"] == "Nitrogen is about 78 percent of air."
        assert len(result["optionAnalysis"]) == 3

    def test_finish_reason_string(self, config, request_data):
        from mcqexplain.errors import TruncatedReplyError
        from mcqexplain.sdk import salvage_reply

        with pytest.raises(TruncatedReplyError):
            salvage_reply('{"summary": "cut', request_data, "truncated", config=config)

    def test_empty_reply(self, config, request_data):
        from mcqexplain.errors import EmptyReplyError
        from mcqexplain.sdk import salvage_reply

        with pytest.raises(EmptyReplyError):
            salvage_reply("   ", request_data, config=config)

    def test_prose_is_malformed(self, config, request_data):
        from mcqexplain.errors import MalformedGrammarError
        from mcqexplain.sdk import salvage_reply

        with pytest.raises(MalformedGrammarError):
            salvage_reply("I think it's A because...", request_data, config=config)
