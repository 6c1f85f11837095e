"""Refresh the stored forex rate table from the configured provider.

Meant for cron (once daily, shortly after 22:00 UTC). By default a failed
sync is logged and the process exits 0 so the existing cache keeps serving;
--strict exits 1 instead.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from toolrouter.core.config import get_settings
from toolrouter.core.logging import init_logging
from toolrouter.db.kv import make_kv_store
from toolrouter.db.migrate import apply_migrations
from toolrouter.models.constants import TRIGGER_SCHEDULED
from toolrouter.services.rates.freshness import FreshnessPolicy
from toolrouter.services.rates.providers import make_rate_provider
from toolrouter.services.rates.store import RateStore
from toolrouter.services.rates.sync import ForexSyncService, run_scheduled_sync
from toolrouter.services.scheduler import run_daily_sync_loop
from toolrouter.services.telemetry import TelemetryClient


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit 1 when the provider call fails instead of keeping the old cache quietly",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Stay in the foreground and sync daily after market close",
    )
    return parser.parse_args(argv)


def build_sync_service() -> tuple[ForexSyncService, FreshnessPolicy]:
    settings = get_settings()
    init_logging(debug=settings.debug)
    if settings.kv_backend == "sqlite":
        apply_migrations(Path(settings.db_path))  # type: ignore[arg-type]
    policy = FreshnessPolicy(
        close_hour=settings.market_close_hour_utc,
        offset_minutes=settings.next_update_offset_minutes,
    )
    store = RateStore(make_kv_store(settings), ttl_seconds=settings.rates_store_ttl_seconds)
    telemetry = TelemetryClient(
        str(settings.analytics_url) if settings.analytics_url else None,
        max_pending=settings.analytics_max_pending,
    )
    return ForexSyncService(make_rate_provider(settings), store, telemetry, policy), policy


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    service, policy = build_sync_service()
    try:
        return _run(args, service, policy)
    finally:
        # deliver queued analytics events before the process exits
        close = getattr(service.telemetry, "close", None)
        if callable(close):
            close(wait=True)


def _run(args: argparse.Namespace, service: ForexSyncService, policy: FreshnessPolicy) -> int:
    if args.loop:
        asyncio.run(run_daily_sync_loop(service, policy))
        return 0
    if args.strict:
        try:
            meta = service.sync(TRIGGER_SCHEDULED)
        except Exception as e:
            print(f"forex sync failed: {e}", file=sys.stderr)
            return 1
    else:
        meta = run_scheduled_sync(service)
        if meta is None:
            return 0
    print(f"stored {meta.rates_count} rates, last updated {meta.last_updated}")
    return 0


if __name__ == "__main__":  # pragma: no cover - thin wrapper
    sys.exit(main())
