from __future__ import annotations

"""In-process daily sync trigger.

Sleeps until the policy's next update time (market close + offset) and runs
the scheduled sync in a worker thread. Failures are logged by
run_scheduled_sync and never end the loop. Deployments that prefer cron use
`toolrouter-sync-rates` instead (settings.enable_scheduler = false).
"""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from toolrouter.services.rates.freshness import FreshnessPolicy, utcnow
from toolrouter.services.rates.sync import ForexSyncService, run_scheduled_sync

logger = logging.getLogger("toolrouter.scheduler")


def seconds_until_next_run(policy: FreshnessPolicy, now: datetime) -> float:
    return max((policy.next_update_time(now) - now).total_seconds(), 0.0)


async def run_daily_sync_loop(
    service: ForexSyncService,
    policy: FreshnessPolicy,
    *,
    clock: Callable[[], datetime] = utcnow,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    max_runs: Optional[int] = None,
) -> None:
    runs = 0
    while max_runs is None or runs < max_runs:
        delay = seconds_until_next_run(policy, clock())
        logger.info("next scheduled forex sync in %.0fs", delay)
        await sleep(delay)
        await asyncio.to_thread(run_scheduled_sync, service)
        runs += 1
