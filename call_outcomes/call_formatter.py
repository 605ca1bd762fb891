"""
Normalize raw call-platform records into CallRecord.

The list endpoint has renamed fields between API versions and omits others
entirely (phone numbers are never exposed there), so every lookup tolerates a
missing or differently named key.
"""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from .models import CallRecord

logger = logging.getLogger(__name__)

UNTITLED_CALL = "Untitled call"

# Alternative key names per field, first present wins
ID_KEYS = ("conversation_id", "id", "call_id")
NAME_KEYS = ("call_summary_title", "name", "title")
PHONE_KEYS = ("phone_number", "caller_number", "to_number", "phone")
DURATION_KEYS = ("call_duration_secs", "duration_seconds", "duration")
SUMMARY_KEYS = ("transcript_summary", "summary", "transcript")
START_KEYS = ("start_time_unix_secs", "start_time", "created_at")
TEXT_KEYS = ("message", "text", "content")


def _first(raw: Mapping, keys: tuple, default: Any = None) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return default


def _to_int(value: Any) -> int:
    """Coerce to a non-negative int; anything unusable becomes 0."""
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, number)


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def synthetic_call_id() -> str:
    """Placeholder id for records the platform sent without one."""
    return f"unknown-{uuid.uuid4().hex}"


def render_transcript(messages: Any) -> str:
    """
    Flatten a message array into a transcript string.

    Each message becomes "<role>: <text>", one message per paragraph. Entries
    without text (tool calls, silence markers) are dropped.
    """
    if not isinstance(messages, list):
        return ""

    paragraphs = []
    for message in messages:
        if not isinstance(message, Mapping):
            continue
        text = _first(message, TEXT_KEYS)
        if not isinstance(text, str) or not text.strip():
            continue
        role = message.get("role") or "unknown"
        paragraphs.append(f"{role}: {text.strip()}")

    return "\n\n".join(paragraphs)


def extract_transcript(detail: Any) -> str:
    """
    Pull a transcript out of a single-conversation response.

    The detail endpoint returns either a ready transcript string, or the
    conversation as a list of messages under "transcript" or "messages".
    """
    if not isinstance(detail, Mapping):
        return ""

    transcript = detail.get("transcript")
    if isinstance(transcript, str) and transcript.strip():
        return transcript.strip()
    if isinstance(transcript, list):
        rendered = render_transcript(transcript)
        if rendered:
            return rendered

    return render_transcript(detail.get("messages"))


def format_call_record(raw: Any) -> Optional[CallRecord]:
    """
    Convert one raw platform record into a CallRecord.

    Returns None when the record is unusable (not an object, or fields that
    fail validation); callers skip it instead of aborting the page.
    """
    if not isinstance(raw, Mapping):
        logger.warning(f"Skipping call record of type {type(raw).__name__}")
        return None

    call_id = _first(raw, ID_KEYS)
    if call_id is None or not str(call_id).strip():
        call_id = synthetic_call_id()
        logger.debug(f"Call record without id, assigned {call_id}")

    summary = _first(raw, SUMMARY_KEYS, "")
    if isinstance(summary, list):
        summary = render_transcript(summary)

    try:
        return CallRecord(
            id=str(call_id).strip(),
            display_name=str(_first(raw, NAME_KEYS, UNTITLED_CALL)),
            phone=str(_first(raw, PHONE_KEYS, "")),
            status=str(raw.get("status") or "unknown"),
            duration_seconds=_to_int(_first(raw, DURATION_KEYS, 0)),
            transcript=summary if isinstance(summary, str) else "",
            start_time=_to_datetime(_first(raw, START_KEYS)),
            message_count=_to_int(raw.get("message_count", 0)),
            call_successful=str(raw.get("call_successful") or "unknown"),
            direction=str(raw.get("direction") or "unknown"),
            agent_name=str(raw.get("agent_name") or "Unknown Agent"),
        )
    except ValidationError as e:
        logger.warning(f"Skipping call record {call_id}: {e}")
        return None
