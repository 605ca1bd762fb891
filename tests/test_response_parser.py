"""Tests for extracting and validating model JSON output."""

import pytest

from call_outcomes.categories import CallCategory
from call_outcomes.exceptions import ResponseParseError
from call_outcomes.models import FailureReason
from call_outcomes.response_parser import (
    DEFAULT_COMMENT,
    extract_json_object,
    parse_classification_response,
)


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_surrounding_prose_and_fences(self):
        text = 'Sure! Here is the result:\n```json\n{"category": "Lead"}\n```\nHope that helps {really}'
        assert extract_json_object(text) == '{"category": "Lead"}'

    def test_nested_objects(self):
        text = 'x {"a": {"b": {"c": 1}}, "d": 2} y {"e": 3}'
        assert extract_json_object(text) == '{"a": {"b": {"c": 1}}, "d": 2}'

    def test_braces_inside_strings(self):
        text = '{"comment": "said \\"{hi}\\" then left }", "confidence": 0.5}'
        assert extract_json_object(text) == text

    def test_no_braces(self):
        assert extract_json_object("I think this was a Lead.") is None

    def test_unbalanced(self):
        assert extract_json_object('{"category": "Lead"') is None

    def test_empty(self):
        assert extract_json_object("") is None


class TestParseClassificationResponse:
    def test_valid_response(self):
        parsed = parse_classification_response(
            '{"category": "Recall", "comment": " Asked for a call tomorrow ", "confidence": 0.82}'
        )

        assert parsed.category == CallCategory.RECALL
        assert parsed.comment == "Asked for a call tomorrow"
        assert parsed.confidence == 0.82
        assert parsed.corrected is False

    def test_trailing_prose_is_ignored(self):
        parsed = parse_classification_response(
            '{"category": "Voicemail", "comment": "Left a message", "confidence": 1}\n\nLet me know!'
        )
        assert parsed.category == CallCategory.VOICEMAIL
        assert parsed.confidence == 1.0

    @pytest.mark.parametrize("text,reason", [
        ("", FailureReason.EMPTY_RESPONSE),
        ("   \n", FailureReason.EMPTY_RESPONSE),
        ("The call was a Lead with high confidence.", FailureReason.NO_JSON_OBJECT),
        ('{"category": "Lead", "confidence": 0.9,}', FailureReason.INVALID_JSON),
        ("{category: Lead}", FailureReason.INVALID_JSON),
    ])
    def test_unusable_output_raises_with_reason(self, text, reason):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_classification_response(text)
        assert exc_info.value.reason == reason

    def test_invalid_category_soft_corrected(self):
        parsed = parse_classification_response(
            '{"category": "Maybe Later", "comment": "unclear", "confidence": 0.9}'
        )

        assert parsed.category == CallCategory.FAILED
        assert parsed.confidence == 0.3
        assert parsed.corrected is True
        assert "Maybe Later" in parsed.comment

    def test_wrong_case_category_is_invalid(self):
        parsed = parse_classification_response('{"category": "lead", "confidence": 0.9}')
        assert parsed.category == CallCategory.FAILED
        assert parsed.corrected is True

    @pytest.mark.parametrize("confidence", ["null", '"high"', "true", "[0.9]"])
    def test_non_numeric_confidence_defaults(self, confidence):
        parsed = parse_classification_response(
            f'{{"category": "Lead", "comment": "ok", "confidence": {confidence}}}'
        )
        assert parsed.confidence == 0.5

    def test_missing_confidence_defaults(self):
        parsed = parse_classification_response('{"category": "Lead", "comment": "ok"}')
        assert parsed.confidence == 0.5

    @pytest.mark.parametrize("confidence", ["1.5", "-0.1", "85", "NaN"])
    def test_out_of_range_confidence_rejected(self, confidence):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_classification_response(
                f'{{"category": "Lead", "comment": "ok", "confidence": {confidence}}}'
            )
        assert exc_info.value.reason == FailureReason.OUT_OF_RANGE_CONFIDENCE

    def test_huge_integer_confidence_rejected(self):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_classification_response(
                '{"category": "Lead", "comment": "ok", "confidence": 1' + "0" * 400 + "}"
            )
        assert exc_info.value.reason == FailureReason.OUT_OF_RANGE_CONFIDENCE

    def test_infinite_confidence_rejected(self):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_classification_response('{"category": "Lead", "confidence": Infinity}')
        assert exc_info.value.reason == FailureReason.OUT_OF_RANGE_CONFIDENCE

    def test_integer_past_conversion_limit_is_invalid_json(self):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_classification_response(
                '{"category": "Lead", "comment": "ok", "confidence": ' + "9" * 5000 + "}"
            )
        assert exc_info.value.reason in (FailureReason.INVALID_JSON, FailureReason.OUT_OF_RANGE_CONFIDENCE)

    def test_deeply_nested_json_is_invalid_json(self):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_classification_response('{"a": ' + "[" * 100000 + "]" * 100000 + "}")
        assert exc_info.value.reason == FailureReason.INVALID_JSON

    @pytest.mark.parametrize("comment", ['""', '"   "', "null", "42"])
    def test_missing_comment_defaults(self, comment):
        parsed = parse_classification_response(
            f'{{"category": "Lead", "comment": {comment}, "confidence": 0.7}}'
        )
        assert parsed.comment == DEFAULT_COMMENT
