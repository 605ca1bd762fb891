#!/usr/bin/env python
"""
Call Outcomes CLI - fetch calls, classify them, inspect services.

Usage:
    call-outcomes categories                                # List outcome categories
    call-outcomes fetch --start 2024-01-01 --end 2024-01-31 # Fetch calls
    call-outcomes analyze --start 2024-01-01 --end 2024-01-31
    call-outcomes transcript <conversation_id>              # Full transcript of one call
    call-outcomes health                                    # Inference service status
"""

import argparse
import asyncio
import json
import logging
import sys

from .call_platform_client import CallPlatformClient
from .categories import list_categories
from .config import Settings
from .exceptions import DateRangeError, IngestionError, TranscriptFetchFailure
from .inference_client import InferenceClient
from .ingestor import ConversationIngestor
from .logging_utils import configure_logging
from .orchestrator import build_orchestrator

logger = logging.getLogger(__name__)


def _truncate(text: str, width: int) -> str:
    text = (text or "").replace("\n", " ")
    return text if len(text) <= width else text[: width - 1] + "…"


def cmd_categories(args, settings):
    """List the outcome categories."""
    for name in list_categories():
        print(name)
    return 0


def cmd_fetch(args, settings):
    """Fetch calls for a date range."""
    settings.enrich_transcripts = settings.enrich_transcripts and not args.no_transcripts
    ingestor = ConversationIngestor.from_settings(CallPlatformClient.from_settings(settings), settings)
    calls = asyncio.run(ingestor.fetch_calls_by_date_range(args.start, args.end))

    if args.json:
        print(json.dumps([call.model_dump(mode="json") for call in calls], indent=2, ensure_ascii=False))
        return 0

    if not calls:
        print(f"\nNo calls between {args.start} and {args.end}.\n")
        return 0

    print(f"\n{'ID':<36} {'Name':<30} {'Status':<12} {'Secs':>6}")
    print("-" * 88)
    for call in calls:
        print(f"{_truncate(call.id, 36):<36} {_truncate(call.display_name, 30):<30} "
              f"{_truncate(call.status, 12):<12} {call.duration_seconds:>6}")
    print(f"\n{len(calls)} calls\n")
    return 0


def cmd_analyze(args, settings):
    """Fetch and classify calls for a date range."""
    if args.no_generative:
        settings.generative_enabled = False
    orchestrator = build_orchestrator(settings)
    analysis = asyncio.run(orchestrator.analyze_date_range(args.start, args.end))

    if args.json:
        print(analysis.model_dump_json(indent=2))
        return 0

    if not analysis.results:
        print(f"\nNo calls between {args.start} and {args.end}.\n")
        return 0

    print(f"\n{'ID':<36} {'Category':<18} {'Conf':>4} {'Model':<10} Comment")
    print("-" * 110)
    for result in analysis.results:
        print(f"{_truncate(result.id, 36):<36} {result.category.value:<18} {result.confidence:>4} "
              f"{result.model.value:<10} {_truncate(result.comment, 40)}")

    print(f"\n# Summary ({analysis.total_calls} calls)\n")
    for name, count in analysis.stats.as_table().items():
        if name != "averageConfidence":
            print(f"  {name:<18} {count}")
    print(f"\n  Average confidence: {analysis.stats.average_confidence}\n")
    return 0


def cmd_transcript(args, settings):
    """Print the full transcript of one call."""
    client = CallPlatformClient.from_settings(settings)
    try:
        transcript = client.get_conversation_transcript(args.conversation_id)
    except TranscriptFetchFailure as e:
        logger.error(str(e))
        return 1

    print(transcript or "(empty transcript)")
    return 0


def cmd_health(args, settings):
    """Check that the inference service is up and the model is pulled."""
    health = asyncio.run(InferenceClient.from_settings(settings).check_health())
    print(json.dumps(health, indent=2))
    return 0 if health["status"] == "healthy" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch and classify recorded calls")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("categories", help="List outcome categories").set_defaults(func=cmd_categories)

    fetch = subparsers.add_parser("fetch", help="Fetch calls for a date range")
    fetch.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    fetch.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    fetch.add_argument("--no-transcripts", action="store_true", help="Keep summaries, skip transcript fetch")
    fetch.add_argument("--json", action="store_true", help="Print JSON")
    fetch.set_defaults(func=cmd_fetch)

    analyze = subparsers.add_parser("analyze", help="Fetch and classify calls for a date range")
    analyze.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    analyze.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    analyze.add_argument("--no-generative", action="store_true", help="Use only the heuristic classifier")
    analyze.add_argument("--json", action="store_true", help="Print JSON")
    analyze.set_defaults(func=cmd_analyze)

    transcript = subparsers.add_parser("transcript", help="Print one call's transcript")
    transcript.add_argument("conversation_id")
    transcript.set_defaults(func=cmd_transcript)

    subparsers.add_parser("health", help="Check the inference service").set_defaults(func=cmd_health)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_dir)

    try:
        return args.func(args, settings)
    except (DateRangeError, IngestionError) as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        # Missing credentials surface as ValueError from the client constructors
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
