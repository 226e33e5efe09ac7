"""
Test configuration: puts the repo root on sys.path and provides the
shared clock, shield, wake scheduler and service fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import focusshield.* and tests.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from focusshield.core.blocking_service import ScheduledBlockingService  # noqa: E402
from focusshield.data.config import Config  # noqa: E402
from tests.fakes import UTC, FakeClock, FakeShield, FakeWakeScheduler, at  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock(at(8, 0))


@pytest.fixture
def shield():
    return FakeShield()


@pytest.fixture
def wake(clock):
    return FakeWakeScheduler(clock)


@pytest.fixture
def config(tmp_path):
    return Config(
        auto_blocking_enabled=True,
        shield_retry_attempts=3,
        shield_retry_delay_seconds=0,
        path=tmp_path / "config.json",
    )


@pytest.fixture
def service(config, shield, wake, clock):
    return ScheduledBlockingService(
        config,
        shield,
        wake,
        clock=clock,
        tz=UTC,
        sleep=lambda seconds: None,
    )
