"""
Batch analysis orchestration.

Classifies a list of calls in fixed-size chunks: members of a chunk run
concurrently, chunks run one after another with a pause in between. This caps
the load on the local inference service while still overlapping latency
within a chunk.

The run is single-pass. A crash mid-run loses the unfinished chunks; there is
no checkpointing.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Optional

from .call_platform_client import CallPlatformClient
from .categories import CATEGORY_ORDER
from .config import Settings
from .generative_classifier import GenerativeClassifier
from .heuristic_classifier import HeuristicClassifier
from .ingestor import ConversationIngestor
from .logging_utils import log_duration
from .models import AnalysisResult, AnalysisStats, BatchAnalysis, CallRecord

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_PAUSE = 1.0


def compute_stats(results: list[AnalysisResult]) -> AnalysisStats:
    """
    Count results per category and average their confidence.

    Every category is present in the table; the average is rounded half up
    and is 0 for an empty result set.
    """
    counts = {category: 0 for category in CATEGORY_ORDER}
    for result in results:
        counts[result.category] += 1

    average = 0
    if results:
        mean = sum(result.confidence for result in results) / len(results)
        average = int(math.floor(mean + 0.5))

    return AnalysisStats(counts=counts, average_confidence=average, total=len(results))


class BatchAnalysisOrchestrator:
    """Runs classification over many calls with bounded concurrency."""

    def __init__(
        self,
        classifier: GenerativeClassifier,
        fallback: Optional[HeuristicClassifier] = None,
        ingestor: Optional[ConversationIngestor] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_pause: float = DEFAULT_BATCH_PAUSE,
    ):
        self.classifier = classifier
        self.fallback = fallback or classifier.fallback
        self.ingestor = ingestor
        self.batch_size = max(1, batch_size)
        self.batch_pause = max(0.0, batch_pause)

    async def analyze_call(self, call: CallRecord) -> AnalysisResult:
        """
        Classify a single call. Never raises.

        A failed generative attempt is resolved here, by the heuristic tier,
        and the failure reason is kept on the result.
        """
        attempt = await self.classifier.attempt(call)
        if attempt.succeeded:
            return attempt.result

        reason = attempt.failure.describe()
        logger.warning(f"Call {call.id}: generative classification failed ({reason}), using fallback")
        return self.fallback.classify(call, fallback_reason=reason)

    async def analyze_calls(self, calls: list[CallRecord]) -> BatchAnalysis:
        """
        Classify calls chunk by chunk and aggregate the results.

        Results come back in input order regardless of completion order
        inside a chunk.
        """
        total_chunks = math.ceil(len(calls) / self.batch_size) if calls else 0
        logger.info(
            f"Analyzing {len(calls)} calls in {total_chunks} chunks of {self.batch_size}"
        )

        results: list[AnalysisResult] = []
        with log_duration(logger, "Batch analysis", calls=len(calls)):
            for chunk_index, start in enumerate(range(0, len(calls), self.batch_size), 1):
                chunk = calls[start:start + self.batch_size]
                chunk_results = await asyncio.gather(*(self.analyze_call(call) for call in chunk))
                results.extend(chunk_results)

                fallbacks = sum(1 for result in chunk_results if result.fallback_reason)
                logger.info(
                    f"Chunk {chunk_index}/{total_chunks}: {len(chunk_results)} classified, "
                    f"{fallbacks} via fallback"
                )

                if start + self.batch_size < len(calls) and self.batch_pause > 0:
                    await asyncio.sleep(self.batch_pause)

        stats = compute_stats(results)
        logger.info(
            f"Analysis complete: {stats.total} calls, average confidence {stats.average_confidence}"
        )

        return BatchAnalysis(
            results=results,
            stats=stats,
            total_calls=len(calls),
            analyzed_at=datetime.now(timezone.utc),
        )

    async def analyze_date_range(self, start_date: str, end_date: str) -> BatchAnalysis:
        """
        Ingest the calls for a date range and classify them.

        Raises:
            DateRangeError: Invalid dates
            IngestionError: Calls could not be fetched
            RuntimeError: No ingestor configured
        """
        if self.ingestor is None:
            raise RuntimeError("analyze_date_range requires an ingestor")

        calls = await self.ingestor.fetch_calls_by_date_range(start_date, end_date)
        if not calls:
            logger.info(f"No calls between {start_date} and {end_date}")
        return await self.analyze_calls(calls)


def build_orchestrator(
    settings: Settings,
    with_ingestor: bool = True,
) -> BatchAnalysisOrchestrator:
    """
    Wire the default services from settings.

    Args:
        settings: Resolved configuration
        with_ingestor: Also build the call-platform client and ingestor
            (requires platform credentials)
    """
    fallback = HeuristicClassifier()
    classifier = GenerativeClassifier.from_settings(settings, fallback=fallback)

    ingestor = None
    if with_ingestor:
        platform = CallPlatformClient.from_settings(settings)
        ingestor = ConversationIngestor.from_settings(platform, settings)

    return BatchAnalysisOrchestrator(
        classifier,
        fallback=fallback,
        ingestor=ingestor,
        batch_size=settings.batch_size,
        batch_pause=settings.batch_pause,
    )
