"""Shared pytest fixtures for the tool router tests."""

import os
import tempfile

# Importing toolrouter.main builds a module-level app from the environment;
# keep it away from the working tree and off the network.
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="toolrouter-test-"))
os.environ.setdefault("EXCHANGE_RATE_PROVIDER", "static")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from toolrouter.core.config import Settings
from toolrouter.core.errors import UpstreamError
from toolrouter.db.kv import SQLiteKeyValueStore
from toolrouter.db.migrate import apply_migrations
from toolrouter.main import create_app
from toolrouter.services.rates.base import ProviderSnapshot, RateProvider
from toolrouter.services.rates.store import RateStore
from toolrouter.services.telemetry import RecordingTelemetry

SAMPLE_RATES: Dict[str, float] = {"EUR": 0.92, "JPY": 150.0}


class FakeProvider(RateProvider):
    name = "fake"

    def __init__(self, rates: Optional[Dict[str, float]] = None, error: Optional[Exception] = None):
        self.rates = dict(rates if rates is not None else SAMPLE_RATES)
        self.error = error
        self.quota_used: Optional[int] = 120
        self.quota_total: Optional[int] = 1000
        self.calls = 0

    def fetch_latest(self) -> ProviderSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ProviderSnapshot(
            rates=dict(self.rates),
            quota_used=self.quota_used,
            quota_total=self.quota_total,
        )


class ClosingTelemetry(RecordingTelemetry):
    def __init__(self):
        super().__init__()
        self.closed_with: List[bool] = []

    def close(self, wait: bool = False) -> None:
        self.closed_with.append(wait)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(
        _env_file=None,
        data_dir=tmp_path,
        db_path=tmp_path / "test.sqlite3",
        kv_backend="sqlite",
        exchange_rate_provider="static",
        analytics_url=None,
        admin_token=None,
        enable_scheduler=False,
    )
    s.init_post_load()
    return s


@pytest.fixture
def kv(settings) -> SQLiteKeyValueStore:
    apply_migrations(settings.db_path)
    return SQLiteKeyValueStore(settings.db_path)


@pytest.fixture
def store(kv) -> RateStore:
    return RateStore(kv)


@pytest.fixture
def telemetry() -> RecordingTelemetry:
    return RecordingTelemetry()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def failing_provider() -> FakeProvider:
    return FakeProvider(error=UpstreamError("ForexRateAPI error: HTTP 500 Internal Server Error"))


@pytest.fixture
def app(settings, provider, telemetry):
    return create_app(settings, provider=provider, telemetry=telemetry)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
