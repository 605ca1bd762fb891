"""
Structured response parser for generative classifications.

The inference service is prompted, not schema-constrained, so models often
wrap the JSON answer in prose or markdown fences. This module finds the first
balanced JSON object in the raw text and validates its three fields.

Validation rules:
- category outside the ten names: soft-corrected to Failed with confidence 0.3
  and an explanatory comment (the rest of the response is still trusted)
- confidence missing or not a number: defaults to 0.5
- confidence a number outside [0, 1]: rejected, the caller falls back
- comment missing or empty: replaced with a generic note
"""

import json
from dataclasses import dataclass
from typing import Optional

from .categories import CallCategory, parse_category
from .exceptions import ResponseParseError
from .models import FailureReason

DEFAULT_CONFIDENCE = 0.5
INVALID_CATEGORY_CONFIDENCE = 0.3
DEFAULT_COMMENT = "Automatic analysis by generative classifier"


@dataclass(frozen=True)
class ParsedClassification:
    category: CallCategory
    comment: str
    confidence: float
    corrected: bool = False


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring of text, or None.

    Braces inside JSON string literals (including escaped quotes) do not
    count towards the balance.
    """
    if not text:
        return None

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return None


def _validate_confidence(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    # NaN fails both comparisons; huge ints compare without float conversion
    if not (0 <= value <= 1):
        raise ResponseParseError(
            FailureReason.OUT_OF_RANGE_CONFIDENCE,
            f"Confidence {value!r} is outside [0, 1]",
        )
    return float(value)


def parse_classification_response(text: str) -> ParsedClassification:
    """
    Parse raw model output into a validated classification.

    Raises:
        ResponseParseError: Empty output, no JSON object, invalid JSON, or a
            confidence outside [0, 1]
    """
    if not text or not text.strip():
        raise ResponseParseError(FailureReason.EMPTY_RESPONSE, "Model returned no content")

    candidate = extract_json_object(text)
    if candidate is None:
        raise ResponseParseError(
            FailureReason.NO_JSON_OBJECT,
            f"No JSON object in model response: {text[:200]!r}",
        )

    try:
        payload = json.loads(candidate)
    except (ValueError, RecursionError) as e:
        raise ResponseParseError(FailureReason.INVALID_JSON, f"Invalid JSON from model: {e}") from e
    if not isinstance(payload, dict):
        raise ResponseParseError(FailureReason.INVALID_JSON, "Model JSON is not an object")

    raw_category = payload.get("category")
    category = parse_category(raw_category)
    if category is None:
        return ParsedClassification(
            category=CallCategory.FAILED,
            comment=f"Invalid category returned by model ({raw_category!r}), classified as Failed",
            confidence=INVALID_CATEGORY_CONFIDENCE,
            corrected=True,
        )

    confidence = _validate_confidence(payload.get("confidence"))

    comment = payload.get("comment")
    if not isinstance(comment, str) or not comment.strip():
        comment = DEFAULT_COMMENT

    return ParsedClassification(category=category, comment=comment.strip(), confidence=confidence)
