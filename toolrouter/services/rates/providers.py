from __future__ import annotations

"""Concrete rate providers and factory.

'forexrateapi' is the production provider (api.forexrateapi.com, key
required). 'static' returns a fixed placeholder table for local development
without network access or an API key.
"""
import logging
from typing import Dict, Optional, TYPE_CHECKING

from pydantic import ValidationError

from toolrouter.core.errors import UpstreamError
from toolrouter.models.rates import ProviderLatestResponse
from toolrouter.services.http_client import get_json, HttpError
from .base import ProviderSnapshot, RateProvider

if TYPE_CHECKING:  # pragma: no cover
    from toolrouter.core.config import Settings

logger = logging.getLogger("toolrouter.rates.providers")

QUOTA_USED_HEADER = "X-API-CURRENT"
QUOTA_TOTAL_HEADER = "X-API-QUOTA"

_STATIC_RATES: Dict[str, float] = {
    "EUR": 0.92,
    "GBP": 0.79,
    "JPY": 150.0,
    "CAD": 1.36,
    "AUD": 1.52,
    "CHF": 0.88,
    "CNY": 7.19,
    "INR": 83.1,
    "BRL": 4.97,
    "MXN": 17.1,
    "KRW": 1330.0,
}


def _parse_quota(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug("ignoring non-numeric quota header %r", value)
        return None


def normalize_rates(rates: Dict[str, float], base_currency: str) -> Dict[str, float]:
    """Uppercase codes and drop the base, which is implicitly 1.0."""
    normalized = {code.upper(): float(rate) for code, rate in rates.items()}
    normalized.pop(base_currency, None)
    return normalized


class StaticRateProvider(RateProvider):
    name = "static"

    def fetch_latest(self) -> ProviderSnapshot:  # type: ignore[override]
        return ProviderSnapshot(rates=dict(_STATIC_RATES))


class ForexRateAPIProvider(RateProvider):
    name = "forexrateapi"

    def __init__(
        self,
        api_key: Optional[str],
        url: str = "https://api.forexrateapi.com/v1/latest",
        timeout: float = 10.0,
        retries: int = 2,
    ):
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._retries = retries

    def fetch_latest(self) -> ProviderSnapshot:  # type: ignore[override]
        if not self._api_key:
            raise UpstreamError("FOREXRATE_API_KEY not configured")
        try:
            resp = get_json(
                self._url,
                params={"api_key": self._api_key, "base": self.base_currency},
                timeout=self._timeout,
                retries=self._retries,
            )
        except HttpError as e:
            raise UpstreamError(f"ForexRateAPI error: {e}") from e
        try:
            body = ProviderLatestResponse.model_validate(resp.data)
        except ValidationError as e:
            raise UpstreamError(f"Invalid response from ForexRateAPI: {e}") from e
        if body.base is not None and body.base.upper() != self.base_currency:
            raise UpstreamError(
                f"ForexRateAPI returned base {body.base}, expected {self.base_currency}"
            )
        rates = normalize_rates(body.rates, self.base_currency)
        if not rates:
            raise UpstreamError("ForexRateAPI returned no quoted currencies")
        return ProviderSnapshot(
            rates=rates,
            status=resp.status,
            quota_used=_parse_quota(resp.header(QUOTA_USED_HEADER)),
            quota_total=_parse_quota(resp.header(QUOTA_TOTAL_HEADER)),
        )


def make_rate_provider(settings: "Settings") -> RateProvider:
    kind = settings.exchange_rate_provider
    if kind == "static":
        return StaticRateProvider()
    if kind == "forexrateapi":
        return ForexRateAPIProvider(
            api_key=settings.forexrate_api_key,
            url=str(settings.forexrate_api_url),
            timeout=settings.http_timeout_seconds,
            retries=settings.http_retries,
        )
    raise ValueError(f"Unknown rate provider kind '{kind}'")
