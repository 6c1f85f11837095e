from __future__ import annotations

"""Fire-and-forget analytics events.

Events go to the analytics service (settings.analytics_url) when configured and
are always written to the `toolrouter.telemetry` logger. A failed delivery is
logged and dropped; callers never see it.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from toolrouter.services.http_client import post_json

logger = logging.getLogger("toolrouter.telemetry")


@dataclass(frozen=True)
class AnalyticsEvent:
    event_type: str
    tool_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "tool_id": self.tool_id,
            "metadata": self.metadata,
        }


class TelemetrySink(Protocol):
    def track(self, event_type: str, tool_id: str, metadata: Dict[str, Any]) -> None: ...


class TelemetryClient:
    """Logs every event and POSTs it from one background worker.

    At most `max_pending` deliveries are queued or in flight; beyond that new
    events are only logged. `close()` stops the worker (called on app shutdown).
    """

    def __init__(
        self,
        analytics_url: Optional[str] = None,
        timeout: float = 2.0,
        max_pending: int = 100,
    ):
        self._url = analytics_url
        self._timeout = timeout
        self._max_pending = max_pending
        self._pending = 0
        self._closed = False
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    def track(self, event_type: str, tool_id: str, metadata: Dict[str, Any]) -> None:
        event = AnalyticsEvent(event_type, tool_id, dict(metadata))
        try:
            logger.info("event %s", event.event_type, extra={"event": event.as_payload()})
            if not self._url:
                return
            with self._lock:
                if self._closed or self._pending >= self._max_pending:
                    logger.warning("analytics backlog full, dropping %s", event_type)
                    return
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="telemetry"
                    )
                self._pending += 1
                self._executor.submit(self._deliver, event)
        except Exception:
            # analytics failure never breaks the main flow
            logger.warning("tracking failed for %s", event_type, exc_info=True)

    def _deliver(self, event: AnalyticsEvent) -> None:
        try:
            post_json(
                f"{self._url.rstrip('/')}/api/analytics/track",
                event.as_payload(),
                headers={"X-Internal-Request": "true"},
                timeout=self._timeout,
            )
        except Exception:
            logger.warning("tracking failed for %s", event.event_type, exc_info=True)
        finally:
            with self._lock:
                self._pending -= 1

    @property
    def pending(self) -> int:
        return self._pending

    def close(self, wait: bool = False) -> None:
        """Stop accepting events; without `wait` queued deliveries are cancelled."""
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=not wait)



class RecordingTelemetry:
    """In-memory sink for tests and local diagnostics."""

    def __init__(self):
        self.events: List[AnalyticsEvent] = []

    def track(self, event_type: str, tool_id: str, metadata: Dict[str, Any]) -> None:
        self.events.append(AnalyticsEvent(event_type, tool_id, dict(metadata)))

    def of_type(self, event_type: str) -> List[AnalyticsEvent]:
        return [e for e in self.events if e.event_type == event_type]


def emit(sink: TelemetrySink, event_type: str, tool_id: str, metadata: Dict[str, Any]) -> None:
    """Track through any sink, dropping whatever it raises."""
    try:
        sink.track(event_type, tool_id, metadata)
    except Exception:
        logger.warning("telemetry sink failed for %s", event_type, exc_info=True)
