from datetime import date

import pytest

from src.untis.config import UntisConfig


@pytest.fixture
def today() -> date:
    return date(2024, 3, 18)


@pytest.fixture
def config() -> UntisConfig:
    return UntisConfig(
        untis_host="untis.example.org",
        untis_school="gymnasium-musterstadt",
        request_timeout_seconds=5,
        _env_file=None,
    )


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Make tenacity retries instant."""
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)
