from __future__ import annotations

"""Rate provider abstraction.

A provider returns one complete table of rates quoted against the base
currency, or raises UpstreamError. Partial tables are never returned.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from toolrouter.models.constants import BASE_CURRENCY


@dataclass(frozen=True)
class ProviderSnapshot:
    rates: Dict[str, float]
    status: int = 200
    quota_used: Optional[int] = None
    quota_total: Optional[int] = None


class RateProvider(ABC):
    base_currency: str = BASE_CURRENCY
    name: str = "abstract"

    @abstractmethod
    def fetch_latest(self) -> ProviderSnapshot:
        """Return units of each currency per 1 unit of base_currency."""
        raise NotImplementedError
