"""Exceptions raised by the ingestion and classification pipeline."""


class CallOutcomesError(Exception):
    """Base class for all pipeline errors."""

    pass


class IngestionError(CallOutcomesError):
    """Raised when calls cannot be fetched from the call platform.

    Covers an unreachable platform, a non-success status once retries are
    exhausted, request timeouts and malformed page envelopes.
    """

    pass


class DateRangeError(CallOutcomesError, ValueError):
    """Raised when a requested date range is malformed or inverted."""

    pass


class TranscriptFetchFailure(CallOutcomesError):
    """Raised when one call's full transcript cannot be fetched."""

    def __init__(self, call_id: str, message: str):
        self.call_id = call_id
        super().__init__(f"Transcript fetch failed for {call_id}: {message}")


class ResponseParseError(CallOutcomesError):
    """Raised when model output cannot be turned into a classification."""

    def __init__(self, reason, message: str):
        self.reason = reason
        super().__init__(message)
