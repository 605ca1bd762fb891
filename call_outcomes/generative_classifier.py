"""
Generative call classifier.

Renders a fixed prompt for one call, asks the inference service for a JSON
verdict and validates it. `attempt` reports success or a typed failure
reason without raising; `classify` resolves a failed attempt through the
heuristic classifier.
"""

import asyncio
import logging
from typing import Optional

from openai import APITimeoutError, OpenAIError

from .categories import CATEGORY_DEFINITIONS, CATEGORY_ORDER
from .exceptions import ResponseParseError
from .heuristic_classifier import HeuristicClassifier
from .inference_client import InferenceClient
from .models import (
    AnalysisResult,
    CallRecord,
    ClassificationAttempt,
    ClassificationFailure,
    ClassifierKind,
    FailureReason,
)
from .response_parser import parse_classification_response

logger = logging.getLogger(__name__)

# Long transcripts are cut to keep the prompt inside small local context windows
MAX_TRANSCRIPT_CHARS = 8000
NO_TRANSCRIPT = "No transcript available"

SYSTEM_PROMPT = "You are an expert analyst of sales phone calls. Respond with valid JSON only."

ANALYSIS_PROMPT = """Classify the following phone call into exactly ONE of these categories:

## Categories
{category_definitions}

## Call Details
- Name: {display_name}
- Phone: {phone}
- Duration: {duration} seconds
- Status: {status}

## Transcript
{transcript}

## Instructions
1. Read the transcript and its context carefully
2. Take the call duration into account
3. Judge the tone and content of the conversation
4. Pick the category that best represents the outcome
5. Write a specific, useful comment
6. Rate your confidence from 0 to 1

Respond ONLY with this JSON object:
{{
  "category": "<one of the exact category names above>",
  "comment": "<10-50 word explanation of the classification>",
  "confidence": <decimal number between 0 and 1>
}}

Do not include any text outside the JSON."""


def format_category_definitions() -> str:
    return "\n".join(
        f"- {category.value}: {CATEGORY_DEFINITIONS[category]}" for category in CATEGORY_ORDER
    )


class GenerativeClassifier:
    """Classifies calls with a generative model."""

    def __init__(
        self,
        inference: Optional[InferenceClient],
        fallback: Optional[HeuristicClassifier] = None,
        temperature: float = 0.3,
        top_p: float = 0.9,
        enabled: bool = True,
    ):
        self.inference = inference
        self.fallback = fallback or HeuristicClassifier()
        self.temperature = temperature
        self.top_p = top_p
        self.enabled = enabled

    @classmethod
    def from_settings(
        cls,
        settings,
        inference: Optional[InferenceClient] = None,
        fallback: Optional[HeuristicClassifier] = None,
    ) -> "GenerativeClassifier":
        if inference is None and settings.generative_enabled:
            inference = InferenceClient.from_settings(settings)
        return cls(
            inference,
            fallback=fallback,
            temperature=settings.temperature,
            top_p=settings.top_p,
            enabled=settings.generative_enabled,
        )

    def build_prompt(self, call: CallRecord) -> str:
        transcript = call.transcript.strip() if call.transcript else ""
        if len(transcript) > MAX_TRANSCRIPT_CHARS:
            transcript = transcript[:MAX_TRANSCRIPT_CHARS] + "\n[transcript truncated]"

        return ANALYSIS_PROMPT.format(
            category_definitions=format_category_definitions(),
            display_name=call.display_name or "N/A",
            phone=call.phone or "N/A",
            duration=call.duration_seconds,
            status=call.status or "N/A",
            transcript=transcript or NO_TRANSCRIPT,
        )

    def build_messages(self, call: CallRecord) -> list[dict]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self.build_prompt(call)},
        ]

    async def attempt(self, call: CallRecord) -> ClassificationAttempt:
        """
        Try to classify one call with the model. Never raises.

        Returns:
            ClassificationAttempt holding either a generative AnalysisResult or
            the ClassificationFailure that prevented one
        """
        if not self.enabled or self.inference is None:
            return self._failed(call, FailureReason.DISABLED)

        try:
            content = await self.inference.chat(
                self.build_messages(call),
                {"temperature": self.temperature, "top_p": self.top_p},
            )
        except (asyncio.TimeoutError, APITimeoutError):
            return self._failed(call, FailureReason.TIMEOUT, f"no answer within {self.inference.timeout}s")
        except OpenAIError as e:
            return self._failed(call, FailureReason.SERVICE_UNAVAILABLE, repr(e))
        except Exception as e:
            logger.exception(f"Unexpected inference error for call {call.id}")
            return self._failed(call, FailureReason.UNEXPECTED_ERROR, repr(e))

        try:
            parsed = parse_classification_response(content)
        except ResponseParseError as e:
            return self._failed(call, e.reason, str(e))
        except Exception as e:
            logger.exception(f"Unexpected parse error for call {call.id}")
            return self._failed(call, FailureReason.UNEXPECTED_ERROR, repr(e))

        if parsed.corrected:
            logger.warning(f"Call {call.id}: {parsed.comment}")

        result = AnalysisResult.from_call(
            call,
            category=parsed.category,
            comment=parsed.comment,
            confidence=parsed.confidence,
            model=ClassifierKind.GENERATIVE,
        )
        return ClassificationAttempt(call=call, result=result)

    async def classify(self, call: CallRecord) -> AnalysisResult:
        """Classify one call, falling back to the heuristic tier on failure."""
        attempt = await self.attempt(call)
        if attempt.succeeded:
            return attempt.result
        return self.fallback.classify(call, fallback_reason=attempt.failure.describe())

    @staticmethod
    def _failed(call: CallRecord, reason: FailureReason, detail: str = "") -> ClassificationAttempt:
        return ClassificationAttempt(call=call, failure=ClassificationFailure(reason, detail))
