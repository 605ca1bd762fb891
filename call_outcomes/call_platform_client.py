"""
ElevenLabs Conversational AI client.

Lists an agent's conversations over a time window (cursor-paginated) and
fetches individual conversations for their full transcripts.

Supports both sync and async modes:
- Async: aiohttp, used by the ingestor during batch runs
- Sync: requests.Session, used by the CLI for single-call lookups
"""

import asyncio
import logging
import os
import random
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import aiohttp
import requests

from .call_formatter import extract_transcript
from .exceptions import IngestionError, TranscriptFetchFailure
from .logging_utils import mask_secret

logger = logging.getLogger(__name__)


class CallPlatform(ABC):
    """What the ingestor needs from a call platform.

    Used as an async context manager around one ingestion run so that
    implementations can share a connection pool across requests.
    """

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    @abstractmethod
    async def list_conversations(
        self,
        start_timestamp: int,
        end_timestamp: int,
        page_size: int,
        cursor: Optional[str] = None,
    ) -> dict:
        """Return one page: {"conversations": [...], "next_cursor": str | None}."""
        pass

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> dict:
        """Return one conversation with its transcript or messages."""
        pass


class CallPlatformClient(CallPlatform):
    """HTTP client for the ElevenLabs conversations API."""

    DEFAULT_BASE_URL = "https://api.elevenlabs.io/v1"
    CONVERSATIONS_ENDPOINT = "/convai/conversations"

    # (connect, read) in seconds
    DEFAULT_TIMEOUT = (10, 30)

    # Exponential backoff on 429/5xx and connection errors: 2s, 4s, 8s
    MAX_RETRIES = 3
    RETRY_DELAY_BASE = 2
    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        api_key: Optional[str] = None,
        agent_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[tuple] = None,
        max_retries: Optional[int] = None,
    ):
        self.api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        self.agent_id = agent_id or os.getenv("ELEVENLABS_AGENT_ID")
        if not self.api_key:
            raise ValueError("ELEVENLABS_API_KEY not set")
        if not self.agent_id:
            raise ValueError("ELEVENLABS_AGENT_ID not set")

        self.base_url = (base_url or os.getenv("ELEVENLABS_BASE_URL") or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else self.MAX_RETRIES

        self.session = requests.Session()
        self.session.headers.update(self._headers())
        self._async_session: Optional[aiohttp.ClientSession] = None

        logger.info(
            f"Call platform client ready (base_url={self.base_url}, "
            f"agent_id={self.agent_id}, api_key={mask_secret(self.api_key)})"
        )

    @classmethod
    def from_settings(cls, settings) -> "CallPlatformClient":
        return cls(
            api_key=settings.platform_api_key,
            agent_id=settings.platform_agent_id,
            base_url=settings.platform_base_url,
            timeout=(cls.DEFAULT_TIMEOUT[0], settings.platform_timeout),
            max_retries=settings.platform_max_retries,
        )

    def _headers(self) -> dict:
        return {
            "xi-api-key": self.api_key,
            "Accept": "application/json",
        }

    @staticmethod
    def _parse_retry_after(header_value: str) -> int:
        """
        Seconds to wait according to a Retry-After header (minimum 1).

        The header is either a number of seconds or an HTTP-date.
        """
        try:
            return max(1, int(header_value))
        except ValueError:
            try:
                retry_at = parsedate_to_datetime(header_value)
                if retry_at.tzinfo is None:
                    retry_at = retry_at.replace(tzinfo=timezone.utc)
                delta = (retry_at - datetime.now(timezone.utc)).total_seconds()
                return max(1, int(delta))
            except (ValueError, TypeError):
                return 10

    @staticmethod
    def _add_jitter(base_delay: float) -> float:
        """Spread retries over 100-150% of the base delay."""
        return base_delay + random.uniform(0, 0.5 * base_delay)

    def _retry_delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        if retry_after:
            base_delay = self._parse_retry_after(retry_after)
        else:
            base_delay = self.RETRY_DELAY_BASE * (2 ** attempt)
        return self._add_jitter(base_delay)

    # ==================== ASYNC METHODS ====================

    def _get_aiohttp_session(self) -> aiohttp.ClientSession:
        """Create an aiohttp session with auth headers and timeouts."""
        timeout = aiohttp.ClientTimeout(
            connect=self.timeout[0],
            sock_read=self.timeout[1],
            total=self.timeout[0] + self.timeout[1],
        )
        return aiohttp.ClientSession(timeout=timeout, headers=self._headers())

    async def __aenter__(self):
        if self._async_session is None:
            self._async_session = self._get_aiohttp_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._async_session is not None:
            await self._async_session.close()
            self._async_session = None
        return False

    async def _request_with_retry_async(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict:
        """
        GET with retry on transient errors.

        Retries 429 (honouring Retry-After), 5xx and connection errors with
        exponential backoff. Other 4xx responses raise immediately.

        Raises:
            aiohttp.ClientError: On non-retryable errors or after max retries
            asyncio.TimeoutError: When the last attempt times out
        """
        url = f"{self.base_url}{endpoint}"

        for attempt in range(self.max_retries + 1):
            try:
                async with session.get(url, params=params) as response:
                    if response.status in self.RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                        delay = self._retry_delay(attempt, response.headers.get("Retry-After"))
                        logger.warning(
                            f"Call platform returned {response.status} on {endpoint}, "
                            f"retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries + 1})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    response.raise_for_status()
                    return await response.json()

            except aiohttp.ClientResponseError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt)
                    logger.warning(
                        f"Call platform connection error on {endpoint}: {e!r}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries + 1})"
                    )
                    await asyncio.sleep(delay)
                else:
                    raise

        raise RuntimeError("Unexpected retry loop exit")

    async def _get_async(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """GET through the shared session, or a one-off session outside a run."""
        if self._async_session is not None:
            return await self._request_with_retry_async(self._async_session, endpoint, params)
        async with self._get_aiohttp_session() as session:
            return await self._request_with_retry_async(session, endpoint, params)

    async def list_conversations(
        self,
        start_timestamp: int,
        end_timestamp: int,
        page_size: int,
        cursor: Optional[str] = None,
    ) -> dict:
        """
        Fetch one page of the agent's conversations.

        Args:
            start_timestamp: Unix seconds, inclusive lower bound on call start
            end_timestamp: Unix seconds, inclusive upper bound on call start
            page_size: Records per page (platform maximum is 100)
            cursor: Opaque cursor from the previous page, None for the first

        Raises:
            IngestionError: Platform unreachable, timed out or non-success status
        """
        params = {
            "agent_id": self.agent_id,
            "call_start_after_unix": start_timestamp,
            "call_start_before_unix": end_timestamp,
            "page_size": page_size,
        }
        if cursor:
            params["cursor"] = cursor

        try:
            return await self._get_async(self.CONVERSATIONS_ENDPOINT, params)
        except aiohttp.ClientResponseError as e:
            raise IngestionError(f"Call platform returned HTTP {e.status}: {e.message}") from e
        except asyncio.TimeoutError as e:
            raise IngestionError("Call platform request timed out") from e
        except aiohttp.ClientError as e:
            raise IngestionError(f"Call platform unreachable: {e}") from e
        except ValueError as e:
            raise IngestionError(f"Call platform returned a non-JSON body: {e}") from e

    async def get_conversation(self, conversation_id: str) -> dict:
        """
        Fetch one conversation with its full transcript.

        Raises:
            TranscriptFetchFailure: On any transport or HTTP failure
        """
        try:
            return await self._get_async(f"{self.CONVERSATIONS_ENDPOINT}/{conversation_id}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TranscriptFetchFailure(conversation_id, repr(e)) from e

    # ==================== END ASYNC METHODS ====================

    def _request_with_retry(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Sync GET with the same retry policy as the async path."""
        url = f"{self.base_url}{endpoint}"

        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)

                if response.status_code in self.RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                    delay = self._retry_delay(attempt, response.headers.get("Retry-After"))
                    logger.warning(
                        f"Call platform returned {response.status_code} on {endpoint}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries + 1})"
                    )
                    time.sleep(delay)
                    continue

                response.raise_for_status()
                return response.json()

            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt)
                    logger.warning(
                        f"Call platform connection error on {endpoint}: {e}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries + 1})"
                    )
                    time.sleep(delay)
                else:
                    raise

        raise RuntimeError("Unexpected retry loop exit")

    def get_conversation_sync(self, conversation_id: str) -> dict:
        """Fetch a single conversation by ID."""
        return self._request_with_retry(f"{self.CONVERSATIONS_ENDPOINT}/{conversation_id}")

    def get_conversation_transcript(self, conversation_id: str) -> str:
        """
        Full transcript of one conversation as plain text.

        Raises:
            TranscriptFetchFailure: When the conversation cannot be fetched
        """
        try:
            detail = self.get_conversation_sync(conversation_id)
        except (requests.RequestException, ValueError) as e:
            raise TranscriptFetchFailure(conversation_id, str(e)) from e
        return extract_transcript(detail)
