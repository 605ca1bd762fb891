"""
Deterministic fallback classifier.

Classifies a call from its duration, platform status and transcript keywords.
Pure Python, no network access; used whenever the generative tier fails or is
disabled.

Decision order (first match wins):
1. Duration under 5 seconds          -> No Answer
2. Known platform status             -> fixed mapping
3. Transcript keyword score > 0.4    -> best-scoring category
4. Transcript under 10 characters    -> No Answer
5. Otherwise                         -> Failed, low confidence
"""

import logging
from typing import NamedTuple, Optional

from .categories import CATEGORY_ORDER, CallCategory
from .models import AnalysisResult, CallRecord, ClassifierKind, to_percent

logger = logging.getLogger(__name__)

SHORT_CALL_SECONDS = 5
SHORT_TRANSCRIPT_CHARS = 10
KEYWORD_MIN_CONFIDENCE = 0.4
KEYWORD_MAX_CONFIDENCE = 0.95


class Decision(NamedTuple):
    category: CallCategory
    comment: str
    confidence: float


STATUS_DECISIONS: dict[str, Decision] = {
    "completed": Decision(CallCategory.COMPLETED, "Call completed according to the call platform", 0.9),
    "no_answer": Decision(CallCategory.NO_ANSWER, "Nobody answered according to the call platform", 0.9),
    "busy": Decision(CallCategory.FAILED, "Line was busy", 0.8),
    "failed": Decision(CallCategory.FAILED, "Call failed according to the call platform", 0.9),
}

# Keys are scored in CATEGORY_ORDER; on equal scores the earlier category wins.
KEYWORD_MAP: dict[CallCategory, list[str]] = {
    CallCategory.FAILED: [
        "call failed", "technical issue", "connection lost", "can't hear", "cannot hear",
    ],
    CallCategory.HANGUP: [
        "hung up", "hangs up", "hanging up", "call ended", "line went dead",
    ],
    CallCategory.LEAD: [
        "i'm interested", "send me", "more information", "sounds good", "sign me up",
    ],
    CallCategory.NO_ANSWER: [
        "no answer", "nobody answered", "no one answered", "is anyone there", "hello?",
    ],
    CallCategory.NON_VIABLE_CLIENT: [
        "not eligible", "don't qualify", "doesn't qualify", "can't afford", "no budget",
    ],
    CallCategory.NOT_INTERESTED: [
        "not interested", "no thanks", "no thank you", "stop calling", "remove me",
    ],
    CallCategory.RECALL: [
        "call me back", "call back later", "another time", "busy right now", "tomorrow",
    ],
    CallCategory.VOICEMAIL: [
        "voicemail", "leave a message", "after the tone", "after the beep", "mailbox",
    ],
    CallCategory.WRONG_NUMBER: [
        "wrong number", "no one by that name", "doesn't live here", "who is this", "never heard of",
    ],
    CallCategory.COMPLETED: [
        "thank you for your time", "appointment", "confirmed", "scheduled", "all set",
    ],
}

DEFAULT_DECISION = Decision(CallCategory.FAILED, "Could not classify automatically", 0.3)


def keyword_score(transcript: str, keywords: list[str]) -> int:
    """Number of keywords found in the transcript (case-insensitive substring)."""
    text = transcript.lower()
    return sum(1 for keyword in keywords if keyword.lower() in text)


class HeuristicClassifier:
    """Rule-based classifier. `classify` never raises."""

    def __init__(self, keyword_map: Optional[dict[CallCategory, list[str]]] = None):
        self.keyword_map = keyword_map if keyword_map is not None else KEYWORD_MAP

    def classify(self, call: CallRecord, fallback_reason: Optional[str] = None) -> AnalysisResult:
        decision = self.decide(call)
        return AnalysisResult.from_call(
            call,
            category=decision.category,
            comment=decision.comment,
            confidence=decision.confidence,
            model=ClassifierKind.FALLBACK,
            fallback_reason=fallback_reason,
        )

    def decide(self, call: CallRecord) -> Decision:
        if call.duration_seconds < SHORT_CALL_SECONDS:
            return Decision(CallCategory.NO_ANSWER, "Very short call, likely unanswered", 0.8)

        status = (call.status or "").strip().lower()
        if status in STATUS_DECISIONS:
            return STATUS_DECISIONS[status]

        transcript = call.transcript or ""
        keyword_decision = self.score_transcript(transcript)
        if keyword_decision is not None:
            return keyword_decision

        if transcript and len(transcript) < SHORT_TRANSCRIPT_CHARS:
            return Decision(CallCategory.NO_ANSWER, "Transcript too short to contain a conversation", 0.7)

        return DEFAULT_DECISION

    def score_transcript(self, transcript: str) -> Optional[Decision]:
        """
        Best keyword match, or None if nothing clears the threshold.

        Confidence is the share of a category's keywords present, capped at
        0.95. Only a strictly higher score displaces an earlier category.
        """
        if not transcript:
            return None

        best_category = None
        best_score = 0
        best_confidence = 0.0

        for category in CATEGORY_ORDER:
            keywords = self.keyword_map.get(category)
            if not keywords:
                continue
            score = keyword_score(transcript, keywords)
            if score > best_score:
                best_category = category
                best_score = score
                best_confidence = min(score / len(keywords), KEYWORD_MAX_CONFIDENCE)

        if best_category is None or best_confidence <= KEYWORD_MIN_CONFIDENCE:
            return None

        return Decision(
            best_category,
            f"Classified from transcript keywords (confidence: {to_percent(best_confidence)}%)",
            best_confidence,
        )
