from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import ValidationError

from toolrouter.db.kv import KeyValueStore
from toolrouter.models.constants import (
    BASE_CURRENCY,
    METADATA_KEY_TEMPLATE,
    RATES_KEY_TEMPLATE,
)
from toolrouter.models.rates import RateMetadata

logger = logging.getLogger("toolrouter.rates.store")

DEFAULT_STORE_TTL_SECONDS = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class RateSnapshot:
    rates: Dict[str, float]
    metadata: RateMetadata


class RateStore:
    """Latest base-currency rate table plus metadata, stored as a pair.

    The physical TTL only bounds storage; freshness is decided at read time by
    the market-close policy.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        ttl_seconds: int = DEFAULT_STORE_TTL_SECONDS,
        base_currency: str = BASE_CURRENCY,
    ):
        self._kv = kv
        self._ttl = ttl_seconds
        self.rates_key = RATES_KEY_TEMPLATE.format(base=base_currency)
        self.metadata_key = METADATA_KEY_TEMPLATE.format(base=base_currency)

    def write(self, rates: Dict[str, float], metadata: RateMetadata) -> None:
        self._kv.set_many(
            {
                self.rates_key: json.dumps(rates, separators=(",", ":"), sort_keys=True),
                self.metadata_key: metadata.model_dump_json(by_alias=True),
            },
            self._ttl,
        )

    def read(self) -> Optional[RateSnapshot]:
        raw_rates = self._kv.get(self.rates_key)
        raw_meta = self._kv.get(self.metadata_key)
        if raw_rates is None or raw_meta is None:
            return None
        try:
            rates = json.loads(raw_rates)
            if not isinstance(rates, dict):
                raise ValueError("rate table is not an object")
            rates = {str(k): float(v) for k, v in rates.items()}
            metadata = RateMetadata.model_validate_json(raw_meta)
        except (ValueError, TypeError, ValidationError):
            logger.warning("discarding unparsable rate cache entry", exc_info=True)
            return None
        return RateSnapshot(rates=rates, metadata=metadata)

    def last_updated(self) -> Optional[str]:
        """Stamp of the stored snapshot, read from the metadata key alone."""
        raw_meta = self._kv.get(self.metadata_key)
        if raw_meta is None:
            return None
        try:
            stamp = json.loads(raw_meta).get("lastUpdated")
        except (ValueError, AttributeError):
            return None
        return stamp if isinstance(stamp, str) else None
