# tests/test_tag_grammar.py
"""Tests for the tolerant <explanation> tag parser."""

import pytest


class TestParseTagDocument:
    def test_full_document(self, valid_tag_reply):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(valid_tag_reply)
        assert record.summary == "Nitrogen makes up about 78 percent of dry air."
        assert record.answer == ["B"]
        assert [item["option"] for item in record.option_analysis] == ["A", "B", "C"]
        assert record.option_analysis[1]["verdict"] == "correct"
        assert record.key_points[0].startswith("Dry air")
        assert record.memory_aids == [{"type": "mnemonic", "text": "N for Nearly everything you breathe"}]
        assert record.citations[0]["url"] == "https://en.wikipedia.org/wiki/Atmosphere_of_Earth"
        assert record.difficulty == "2"
        assert record.insufficiency is False

    def test_minimal_document_has_missing_fields(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            '<explanation><summary>A twenty-five char summary</summary>'
            '<answers><answer option="A">x</answer></answers></explanation>'
        )
        assert record.answer == ["A"]
        assert record.option_analysis == []
        assert record.key_points == []
        assert record.difficulty is None
        assert record.insufficiency is None

    def test_case_insensitive_tags_and_single_quotes(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            "<EXPLANATION><Answers><ANSWER option='C'>Argon</ANSWER></Answers></EXPLANATION>"
        )
        assert record.answer == ["C"]

    def test_answer_without_option_attribute_skipped(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            '<explanation><answer>A</answer><answer option="B">B</answer></explanation>'
        )
        assert record.answer == ["B"]

    def test_item_defaults(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            '<explanation><item option="D" verdict="Correct"></item>'
            '<item option="E" verdict="maybe"><reason>Not supported here.</reason></item></explanation>'
        )
        first, second = record.option_analysis
        assert first["verdict"] == "correct"
        assert first["reason"] == "No specific reasoning was given for option D."
        assert second["verdict"] == "wrong"
        assert second["reason"] == "Not supported here."

    def test_short_aids_skipped(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            '<explanation><aid type="RULE">abc</aid><aid>Long enough aid</aid></explanation>'
        )
        assert record.memory_aids == [{"type": "OTHER", "text": "Long enough aid"}]

    def test_entities_decoded(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            "<explanation><summary>A &lt; B &amp;&amp; C &gt; D, &quot;quoted&quot; &apos;x&apos;</summary>"
            "<point>&amp;lt; stays literal</point></explanation>"
        )
        assert record.summary == "A < B && C > D, \"quoted\" 'x'"
        assert record.key_points == ["&lt; stays literal"]

    def test_comments_ignored(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document(
            '<!-- <explanation><answer option="Z"/></explanation> -->'
            '<explanation><answers><answer option="A">x</answer></answers></explanation>'
        )
        assert record.answer == ["A"]

    def test_insufficiency_true(self):
        from mcqexplain.parsing import parse_tag_document

        record = parse_tag_document("<explanation><insufficiency> TRUE </insufficiency></explanation>")
        assert record.insufficiency is True


class TestMissingContainer:
    def test_missing_container_is_malformed(self):
        from mcqexplain.errors import MalformedGrammarError
        from mcqexplain.parsing import parse_tag_document

        with pytest.raises(MalformedGrammarError):
            parse_tag_document("<summary>No container here at all.</summary>")

    def test_unclosed_container_is_retryable(self):
        from mcqexplain.errors import RetryableParseError
        from mcqexplain.parsing import parse_tag_document

        with pytest.raises(RetryableParseError):
            parse_tag_document("<explanation><summary>Cut off mid")

    def test_truncated_finish_is_retryable(self):
        from mcqexplain.errors import RetryableParseError
        from mcqexplain.parsing import parse_tag_document
        from mcqexplain.transport import FinishReason

        with pytest.raises(RetryableParseError):
            parse_tag_document("<summary>partial", FinishReason.TRUNCATED)


class TestDecodeEntities:
    def test_amp_decoded_last(self):
        from mcqexplain.parsing import decode_entities

        assert decode_entities("&amp;gt;") == "&gt;"
        assert decode_entities("a &amp; b") == "a & b"
