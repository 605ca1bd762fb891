"""Tests for the call-outcomes command line."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock, patch

import pytest

from call_outcomes import cli
from call_outcomes.categories import CallCategory
from call_outcomes.config import Settings
from call_outcomes.exceptions import IngestionError, TranscriptFetchFailure
from call_outcomes.models import AnalysisResult, BatchAnalysis, ClassifierKind
from call_outcomes.orchestrator import compute_stats


@pytest.fixture(autouse=True)
def quiet_cli():
    """Fixed settings, no logging handlers installed on the root logger."""
    settings = Settings(platform_api_key="key", platform_agent_id="agent_1")
    with patch.object(cli.Settings, "from_env", return_value=settings), \
         patch.object(cli, "configure_logging"):
        yield settings


def _analysis(make_call):
    results = [
        AnalysisResult.from_call(make_call(id="c1"), CallCategory.LEAD, "Wants a quote", 0.9,
                                 ClassifierKind.GENERATIVE),
        AnalysisResult.from_call(make_call(id="c2"), CallCategory.NO_ANSWER, "Very short call", 0.8,
                                 ClassifierKind.FALLBACK, fallback_reason="timeout"),
    ]
    return BatchAnalysis(
        results=results,
        stats=compute_stats(results),
        total_calls=2,
        analyzed_at=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )


class TestCategories:
    def test_prints_names(self, capsys):
        assert cli.main(["categories"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Failed"
        assert len(lines) == 10


class TestAnalyze:
    def test_prints_table_and_summary(self, make_call, capsys):
        orchestrator = Mock()
        orchestrator.analyze_date_range = AsyncMock(return_value=_analysis(make_call))

        with patch.object(cli, "build_orchestrator", return_value=orchestrator):
            assert cli.main(["analyze", "--start", "2024-01-01", "--end", "2024-01-31"]) == 0

        out = capsys.readouterr().out
        assert "Wants a quote" in out
        assert "Average confidence: 85" in out

    def test_json_output(self, make_call, capsys):
        orchestrator = Mock()
        orchestrator.analyze_date_range = AsyncMock(return_value=_analysis(make_call))

        with patch.object(cli, "build_orchestrator", return_value=orchestrator):
            cli.main(["analyze", "--start", "2024-01-01", "--end", "2024-01-31", "--json"])

        payload = json.loads(capsys.readouterr().out)
        assert [result["category"] for result in payload["results"]] == ["Lead", "No Answer"]
        assert payload["stats"]["average_confidence"] == 85

    def test_no_generative_flag(self, make_call, quiet_cli):
        orchestrator = Mock()
        orchestrator.analyze_date_range = AsyncMock(return_value=_analysis(make_call))

        with patch.object(cli, "build_orchestrator", return_value=orchestrator) as build:
            cli.main(["analyze", "--start", "2024-01-01", "--end", "2024-01-31", "--no-generative"])

        assert build.call_args.args[0].generative_enabled is False

    def test_invalid_dates_exit_1(self):
        assert cli.main(["analyze", "--start", "2024-13-01", "--end", "2024-01-31"]) == 1

    def test_ingestion_failure_exit_1(self):
        orchestrator = Mock()
        orchestrator.analyze_date_range = AsyncMock(side_effect=IngestionError("HTTP 503"))

        with patch.object(cli, "build_orchestrator", return_value=orchestrator):
            assert cli.main(["analyze", "--start", "2024-01-01", "--end", "2024-01-31"]) == 1

    def test_missing_credentials_exit_1(self, quiet_cli):
        quiet_cli.platform_api_key = None
        with patch.dict("os.environ", {"ELEVENLABS_API_KEY": ""}):
            assert cli.main(["analyze", "--start", "2024-01-01", "--end", "2024-01-31"]) == 1


class TestFetch:
    def test_json_output(self, make_call, capsys):
        with patch.object(cli.ConversationIngestor, "fetch_calls_by_date_range",
                          new=AsyncMock(return_value=[make_call(id="c1")])):
            assert cli.main(["fetch", "--start", "2024-01-01", "--end", "2024-01-01", "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload[0]["id"] == "c1"

    def test_no_transcripts_flag(self, quiet_cli):
        with patch.object(cli.ConversationIngestor, "fetch_calls_by_date_range", new=AsyncMock(return_value=[])):
            cli.main(["fetch", "--start", "2024-01-01", "--end", "2024-01-01", "--no-transcripts"])

        assert quiet_cli.enrich_transcripts is False


class TestTranscript:
    def test_prints_transcript(self, capsys):
        with patch.object(cli.CallPlatformClient, "get_conversation_transcript", return_value="agent: Hello"):
            assert cli.main(["transcript", "conv_1"]) == 0

        assert "agent: Hello" in capsys.readouterr().out

    def test_fetch_failure_exit_1(self):
        error = TranscriptFetchFailure("conv_1", "HTTP 404")
        with patch.object(cli.CallPlatformClient, "get_conversation_transcript", side_effect=error):
            assert cli.main(["transcript", "conv_1"]) == 1


class TestHealth:
    @pytest.mark.parametrize("status,code", [("healthy", 0), ("unhealthy", 1)])
    def test_exit_code_follows_status(self, status, code, capsys):
        health = {"status": status, "model": "callAnalyser"}
        with patch.object(cli.InferenceClient, "check_health", new=AsyncMock(return_value=health)):
            assert cli.main(["health"]) == code

        assert json.loads(capsys.readouterr().out)["status"] == status
