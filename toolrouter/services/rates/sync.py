from __future__ import annotations

"""Forex sync: the only path that writes rates into the store.

The provider is called once per run; on success the table and its metadata
replace the stored pair. On any failure the store is left untouched, a
`forex_api_error` event is emitted and the error re-raised. Scheduled runs go
through `run_scheduled_sync`, which logs and swallows the failure so the
existing cache keeps serving.
"""
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from toolrouter.core.errors import UpstreamError
from toolrouter.models.constants import (
    SOURCE_API,
    TOOL_ID,
    TRIGGER_MANUAL,
    TRIGGER_SCHEDULED,
)
from toolrouter.models.rates import RateMetadata
from toolrouter.services.money import percentage
from toolrouter.services.telemetry import TelemetrySink, emit
from .base import RateProvider
from .freshness import FreshnessPolicy, format_timestamp, utcnow
from .store import RateStore

logger = logging.getLogger("toolrouter.rates.sync")


class ForexSyncService:
    def __init__(
        self,
        provider: RateProvider,
        store: RateStore,
        telemetry: TelemetrySink,
        policy: Optional[FreshnessPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._provider = provider
        self._store = store
        self._telemetry = telemetry
        self._policy = policy or FreshnessPolicy()
        self._clock = clock
        self._listeners: list[Callable[[RateMetadata], None]] = []

    @property
    def telemetry(self) -> TelemetrySink:
        return self._telemetry

    def add_listener(self, listener: Callable[[RateMetadata], None]) -> None:
        """Register a callback run after each successful write."""
        self._listeners.append(listener)

    def sync(self, trigger: str = TRIGGER_MANUAL) -> RateMetadata:
        started = time.monotonic()
        try:
            snapshot = self._provider.fetch_latest()
            if not snapshot.rates:
                raise UpstreamError("provider returned an empty rate table")
            now = self._clock()
            metadata = RateMetadata(
                last_updated=format_timestamp(now),
                source=SOURCE_API,
                is_expired=False,
                next_update=format_timestamp(self._policy.next_update_time(now)),
                rates_count=len(snapshot.rates),
                api_quota_used=snapshot.quota_used,
                api_quota_total=snapshot.quota_total,
            )
            self._store.write(snapshot.rates, metadata)
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            emit(
                self._telemetry,
                "forex_api_error",
                TOOL_ID,
                {
                    "error": str(e) or type(e).__name__,
                    "duration_ms": duration_ms,
                    "trigger": trigger,
                },
            )
            logger.error("forex rate update failed after %dms: %s", duration_ms, e)
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        quota_pct = None
        if snapshot.quota_used is not None and snapshot.quota_total:
            quota_pct = percentage(snapshot.quota_used, snapshot.quota_total)
        emit(
            self._telemetry,
            "forex_api_call",
            TOOL_ID,
            {
                "status": snapshot.status,
                "duration_ms": duration_ms,
                "rates_count": metadata.rates_count,
                "quota_used": snapshot.quota_used,
                "quota_total": snapshot.quota_total,
                "quota_percentage": quota_pct,
                "trigger": trigger,
            },
        )
        logger.info(
            "forex rates updated: %d currencies in %dms (%s)",
            metadata.rates_count,
            duration_ms,
            trigger,
        )
        for listener in self._listeners:
            try:
                listener(metadata)
            except Exception:
                logger.exception("sync listener failed")
        return metadata


def run_scheduled_sync(service: ForexSyncService) -> Optional[RateMetadata]:
    """Scheduled entrypoint: never raises, returns None on failure."""
    try:
        return service.sync(TRIGGER_SCHEDULED)
    except Exception:
        logger.exception("scheduled forex sync failed; keeping existing cache")
        return None
