"""
Pytest configuration for call outcome tests.

Test tiers:
- fast (default): Pure unit tests, all I/O mocked
- medium: Async HTTP client tests against mocked aiohttp sessions
- slow: Live call platform or inference service

Run tiers:
- pytest                          # Fast + medium (default addopts)
- pytest -m slow                  # Slow only
- pytest --override-ini="addopts=" -v   # Full suite

Unmarked tests are auto-assigned to 'fast'. Tests marked
@pytest.mark.integration without a tier default to 'medium'.

API key safety:
- Fast/medium runs force fake platform credentials so a mock failure can
  never reach the real call platform
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from call_outcomes.models import CallRecord  # noqa: E402

FAKE_CREDENTIALS = {
    "ELEVENLABS_API_KEY": "xi-test-fake-key-for-testing",
    "ELEVENLABS_AGENT_ID": "agent_test",
}


# =============================================================================
# Tier Auto-Assignment
# =============================================================================

def pytest_collection_modifyitems(config, items):
    """Assign the 'fast' tier to unmarked tests, 'medium' to bare integration tests."""
    for item in items:
        has_tier = (
            list(item.iter_markers(name="fast")) or
            list(item.iter_markers(name="medium")) or
            list(item.iter_markers(name="slow"))
        )
        if has_tier:
            continue

        if list(item.iter_markers(name="skip")):
            continue

        if list(item.iter_markers(name="integration")):
            item.add_marker(pytest.mark.medium)
            continue

        item.add_marker(pytest.mark.fast)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Force fake platform credentials unless slow tests are selected."""
    markexpr = getattr(config.option, "markexpr", "") or ""

    includes_slow_tests = (
        not markexpr or
        (
            "slow" in markexpr and
            "not slow" not in markexpr
        )
    )

    for name, value in FAKE_CREDENTIALS.items():
        if includes_slow_tests:
            os.environ.setdefault(name, value)
        else:
            os.environ[name] = value


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def make_call():
    """Factory for CallRecords with sensible defaults."""
    def _make(**overrides) -> CallRecord:
        fields = {
            "id": "conv_1",
            "display_name": "Follow-up with Jane",
            "phone": "+15550100",
            "status": "done",
            "duration_seconds": 60,
            "transcript": "",
        }
        fields.update(overrides)
        return CallRecord(**fields)
    return _make


@pytest.fixture
def raw_conversation():
    """One record as returned by the platform's list endpoint."""
    return {
        "agent_id": "agent_test",
        "conversation_id": "conv_abc123",
        "start_time_unix_secs": 1705881600,
        "call_duration_secs": 95,
        "message_count": 12,
        "status": "done",
        "call_successful": "success",
        "agent_name": "Outbound Sales",
        "call_summary_title": "Pricing question",
        "transcript_summary": "The customer asked about pricing and wants a quote.",
        "direction": "outbound",
    }
