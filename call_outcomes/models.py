"""
Data models for the call outcome pipeline.

CallRecord is what the ingestor produces; AnalysisResult is a CallRecord plus
the classification outcome. Both are pydantic models so they can be dumped
straight to JSON by whatever layer serves them.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .categories import CATEGORY_ORDER, CallCategory


class ClassifierKind(str, Enum):
    """Which tier produced a classification."""

    GENERATIVE = "generative"
    FALLBACK = "fallback"


class FailureReason(str, Enum):
    """Why the generative tier did not produce a result."""

    DISABLED = "disabled"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    NO_JSON_OBJECT = "no_json_object"
    INVALID_JSON = "invalid_json"
    OUT_OF_RANGE_CONFIDENCE = "out_of_range_confidence"
    UNEXPECTED_ERROR = "unexpected_error"


class CallRecord(BaseModel):
    """One observed call, normalized from the platform's wire shape."""

    id: str = Field(min_length=1)
    display_name: str = ""
    phone: str = ""
    status: str = "unknown"
    duration_seconds: int = Field(default=0, ge=0)
    transcript: str = ""
    start_time: Optional[datetime] = None

    # Advisory metadata, not used for classification
    message_count: int = 0
    call_successful: str = "unknown"
    direction: str = "unknown"
    agent_name: str = "Unknown Agent"


class AnalysisResult(CallRecord):
    """A CallRecord with its classification outcome. Immutable once built."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    category: CallCategory
    comment: str
    confidence: int = Field(ge=0, le=100)
    analyzed_at: datetime
    model: ClassifierKind
    fallback_reason: Optional[str] = None

    @classmethod
    def from_call(
        cls,
        call: CallRecord,
        category: CallCategory,
        comment: str,
        confidence: float,
        model: ClassifierKind,
        fallback_reason: Optional[str] = None,
    ) -> "AnalysisResult":
        """Build a result from a call and a 0-1 confidence."""
        return cls(
            **call.model_dump(include=set(CallRecord.model_fields)),
            category=category,
            comment=comment,
            confidence=to_percent(confidence),
            analyzed_at=datetime.now(timezone.utc),
            model=model,
            fallback_reason=fallback_reason,
        )


class AnalysisStats(BaseModel):
    """Aggregate over a result set."""

    counts: dict[CallCategory, int]
    average_confidence: int = 0
    total: int = 0

    def count(self, category: CallCategory) -> int:
        return self.counts.get(category, 0)

    def as_table(self) -> dict[str, int]:
        """Flat {category name: count, "averageConfidence": n} view."""
        table = {category.value: self.counts.get(category, 0) for category in CATEGORY_ORDER}
        table["averageConfidence"] = self.average_confidence
        return table


class BatchAnalysis(BaseModel):
    """Output of one orchestrated batch run."""

    results: list[AnalysisResult]
    stats: AnalysisStats
    total_calls: int
    analyzed_at: datetime


@dataclass(frozen=True)
class ClassificationFailure:
    """A typed reason why the generative tier failed for one call."""

    reason: FailureReason
    detail: str = ""

    def describe(self) -> str:
        if self.detail:
            return f"{self.reason.value}: {self.detail}"
        return self.reason.value


@dataclass(frozen=True)
class ClassificationAttempt:
    """Either a generative result or the failure that prevented one."""

    call: CallRecord
    result: Optional[AnalysisResult] = None
    failure: Optional[ClassificationFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


def to_percent(confidence: float) -> int:
    """Convert a 0-1 confidence to an integer percentage, rounding half up."""
    percent = math.floor(confidence * 100 + 0.5)
    return max(0, min(100, int(percent)))
