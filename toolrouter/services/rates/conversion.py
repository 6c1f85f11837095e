from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from toolrouter.core.errors import CurrencyNotFoundError, RatesUnavailableError
from toolrouter.models.constants import SOURCE_CACHE, SOURCE_EXPIRED_CACHE, TOOL_ID
from toolrouter.models.rates import RateMetadata
from toolrouter.services.money import round2
from toolrouter.services.telemetry import TelemetrySink, emit
from .freshness import FreshnessPolicy, cache_age_hours, format_timestamp, utcnow
from .resolver import cross_rate, is_quoted
from .store import RateSnapshot, RateStore

"""Currency conversion served purely from the rate store.

Read path only: the provider is never called here. Stale tables are served
with source='expired-cache'; only an empty store fails (RatesUnavailableError).
"""


@dataclass(frozen=True)
class ConversionResult:
    amount: float
    from_currency: str
    to_currency: str
    converted_amount: float
    rate: float
    source: str
    is_expired: bool
    last_updated: str


class CurrencyConverter:
    def __init__(
        self,
        store: RateStore,
        telemetry: TelemetrySink,
        policy: Optional[FreshnessPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._telemetry = telemetry
        self._policy = policy or FreshnessPolicy()
        self._clock = clock

    def _snapshot(self) -> RateSnapshot:
        snapshot = self._store.read()
        if snapshot is None:
            raise RatesUnavailableError("No forex rates available")
        return snapshot

    def convert(self, amount: float, from_currency: str, to_currency: str) -> ConversionResult:
        snapshot = self._snapshot()
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        for code in (from_currency, to_currency):
            if not is_quoted(code, snapshot.rates):
                raise CurrencyNotFoundError(code)

        now = self._clock()
        last_updated = snapshot.metadata.last_updated
        expired = self._policy.is_expired(last_updated, now)
        rate = cross_rate(from_currency, to_currency, snapshot.rates)
        source = SOURCE_EXPIRED_CACHE if expired else SOURCE_CACHE

        emit(
            self._telemetry,
            "currency_conversion",
            TOOL_ID,
            {
                "from_currency": from_currency,
                "to_currency": to_currency,
                "exchange_rate": rate,
                "source": source,
                "is_expired": expired,
                "cache_age_hours": cache_age_hours(last_updated, now),
            },
        )
        return ConversionResult(
            amount=amount,
            from_currency=from_currency,
            to_currency=to_currency,
            converted_amount=round2(amount * rate),
            rate=rate,
            source=source,
            is_expired=expired,
            last_updated=last_updated,
        )

    def metadata(self) -> RateMetadata:
        """Stored metadata with expiry and next update recomputed for now."""
        stored = self._snapshot().metadata
        now = self._clock()
        return stored.model_copy(
            update={
                "is_expired": self._policy.is_expired(stored.last_updated, now),
                "next_update": format_timestamp(self._policy.next_update_time(now)),
            }
        )
