"""
Conversation ingestion over a date range.

Walks the call platform's cursor-paginated conversation list for one agent,
normalizes each record and, optionally, replaces each record's summary with
its full transcript.

The list endpoint only returns a transcript summary, so enrichment costs one
extra request per call and dominates latency. Enrichment failures are never
fatal: the record keeps whatever summary it already had.
"""

import asyncio
import logging
import re
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .call_formatter import extract_transcript, format_call_record
from .call_platform_client import CallPlatform
from .config import MAX_PAGE_SIZE
from .exceptions import DateRangeError, IngestionError, TranscriptFetchFailure
from .logging_utils import log_duration
from .models import CallRecord

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Runaway-loop guard, not a business limit
MAX_PAGES = 100


def parse_date(value: str, field: str) -> date:
    """Parse a strict YYYY-MM-DD string."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise DateRangeError(f"{field} must be a date in YYYY-MM-DD format, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise DateRangeError(f"{field} is not a valid calendar date: {value!r}") from e


def day_bounds(start_date: str, end_date: str, tz_name: str = "UTC") -> tuple[int, int]:
    """
    Inclusive Unix-second bounds for a calendar date range.

    Returns (start_date at 00:00:00, end_date at 23:59:59) in the given
    timezone.

    Raises:
        DateRangeError: Malformed dates, unknown timezone or start after end
    """
    start = parse_date(start_date, "start_date")
    end = parse_date(end_date, "end_date")
    if start > end:
        raise DateRangeError(f"start_date {start_date} is after end_date {end_date}")

    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise DateRangeError(f"Unknown platform timezone {tz_name!r}") from e

    start_ts = int(datetime.combine(start, time(0, 0, 0), tzinfo=tz).timestamp())
    end_ts = int(datetime.combine(end, time(23, 59, 59), tzinfo=tz).timestamp())
    return start_ts, end_ts


class ConversationIngestor:
    """Fetches and normalizes calls for a date range."""

    def __init__(
        self,
        platform: CallPlatform,
        page_size: int = MAX_PAGE_SIZE,
        enrich_transcripts: bool = True,
        transcript_concurrency: int = 5,
        timezone_name: str = "UTC",
        max_pages: int = MAX_PAGES,
    ):
        self.platform = platform
        self.page_size = max(1, min(MAX_PAGE_SIZE, page_size))
        self.enrich_transcripts = enrich_transcripts
        self.transcript_concurrency = max(1, transcript_concurrency)
        self.timezone_name = timezone_name
        self.max_pages = max_pages

    @classmethod
    def from_settings(cls, platform: CallPlatform, settings) -> "ConversationIngestor":
        return cls(
            platform,
            page_size=settings.page_size,
            enrich_transcripts=settings.enrich_transcripts,
            transcript_concurrency=settings.transcript_concurrency,
            timezone_name=settings.platform_timezone,
        )

    async def fetch_calls_by_date_range(self, start_date: str, end_date: str) -> list[CallRecord]:
        """
        Fetch every call between two calendar dates, inclusive.

        Args:
            start_date: First day, "YYYY-MM-DD"
            end_date: Last day, "YYYY-MM-DD"

        Returns:
            CallRecords in page order, then in-page order

        Raises:
            DateRangeError: Before any request, if the dates are invalid
            IngestionError: If any page cannot be fetched; no partial result
        """
        start_ts, end_ts = day_bounds(start_date, end_date, self.timezone_name)
        logger.info(f"Fetching calls from {start_date} to {end_date} ({start_ts}-{end_ts})")

        calls: list[CallRecord] = []
        seen_ids: set[str] = set()

        with log_duration(logger, "Call ingestion", start=start_date, end=end_date):
            async with self.platform:
                cursor: Optional[str] = None
                page_count = 0

                while True:
                    data = await self.platform.list_conversations(
                        start_ts, end_ts, self.page_size, cursor
                    )
                    page_count += 1
                    raw_conversations, cursor = self._unpack_page(data, page_count)

                    page_calls = self._format_page(raw_conversations, seen_ids)
                    if self.enrich_transcripts and page_calls:
                        page_calls = await self._enrich_page(page_calls)
                    calls.extend(page_calls)

                    logger.info(
                        f"Page {page_count}: {len(raw_conversations)} records, "
                        f"{len(page_calls)} kept ({len(calls)} total)"
                    )

                    if not cursor:
                        break
                    if page_count >= self.max_pages:
                        logger.warning(
                            f"Stopped after {page_count} pages with a cursor still pending; "
                            f"results may be incomplete"
                        )
                        break

        logger.info(f"Fetched {len(calls)} calls across {page_count} pages")
        return calls

    @staticmethod
    def _unpack_page(data, page_number: int) -> tuple[list, Optional[str]]:
        """Validate a page envelope and return (records, next cursor)."""
        if not isinstance(data, dict):
            raise IngestionError(f"Page {page_number}: expected an object, got {type(data).__name__}")

        conversations = data.get("conversations", [])
        if conversations is None:
            conversations = []
        if not isinstance(conversations, list):
            raise IngestionError(f"Page {page_number}: 'conversations' is not a list")

        next_cursor = data.get("next_cursor")
        if data.get("has_more") is False:
            next_cursor = None
        if next_cursor is not None and not isinstance(next_cursor, str):
            raise IngestionError(f"Page {page_number}: 'next_cursor' is not a string")

        return conversations, next_cursor or None

    @staticmethod
    def _format_page(raw_conversations: list, seen_ids: set[str]) -> list[CallRecord]:
        page_calls = []
        for raw in raw_conversations:
            call = format_call_record(raw)
            if call is None:
                continue
            if call.id in seen_ids:
                logger.debug(f"Skipping duplicate call {call.id}")
                continue
            seen_ids.add(call.id)
            page_calls.append(call)
        return page_calls

    async def _enrich_page(self, calls: list[CallRecord]) -> list[CallRecord]:
        """Replace summaries with full transcripts, keeping input order."""
        semaphore = asyncio.Semaphore(self.transcript_concurrency)

        async def enrich_one(call: CallRecord) -> CallRecord:
            async with semaphore:
                return await self.enrich_call(call)

        return list(await asyncio.gather(*(enrich_one(call) for call in calls)))

    async def enrich_call(self, call: CallRecord) -> CallRecord:
        """
        Attach the full transcript to one call.

        Any failure, or an empty transcript, leaves the call unchanged.
        """
        try:
            detail = await self.platform.get_conversation(call.id)
        except (TranscriptFetchFailure, IngestionError) as e:
            logger.warning(f"Keeping summary transcript for {call.id}: {e}")
            return call

        transcript = extract_transcript(detail)
        if not transcript:
            return call
        return call.model_copy(update={"transcript": transcript})
