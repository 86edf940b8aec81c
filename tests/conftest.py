"""Shared pytest configuration and fixtures for the screen monitor test suite."""

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Ensure src/ is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from monitor.config import MonitorConfig  # noqa: E402


# =============================================================================
# Shared Fixtures
# =============================================================================

class FakeClock:
    """Manually advanced clock, callable like datetime.now."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


MONITOR_ENV_VARS = (
    "SCREENSHOT_INTERVAL", "OUTPUT_FOLDER", "OPENAI_API_ENDPOINT", "OPENAI_API_KEY",
    "MODEL", "AI_VISION_PROMPT", "PAYLOAD_FORMAT", "MAX_TOKENS", "WINDOW_INFO",
    "AUDIO_ENABLED", "MIC_SELECTION", "AUDIO_SEGMENT_SECONDS", "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Isolated copy of the environment without monitor-related variables.

    load_dotenv writes into os.environ directly, so the whole mapping is
    swapped out and restored on teardown.
    """
    env = {k: v for k, v in os.environ.items() if k not in MONITOR_ENV_VARS}
    monkeypatch.setattr(os, "environ", env)
    return monkeypatch


@pytest.fixture
def monitor_config(tmp_path: Path) -> MonitorConfig:
    """Config pointing at a temporary output dir, audio and window info disabled."""
    return MonitorConfig(
        api_key="sk-test",
        output_dir=tmp_path / "output",
        interval=1,
        window_info=False,
        audio_enabled=False,
    )
