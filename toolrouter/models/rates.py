from __future__ import annotations

import math
import re
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_CODE_RE = re.compile(r"^[A-Za-z]{3}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RateMetadata(CamelModel):
    """Stored alongside the rate table; is_expired is informational only."""

    last_updated: str
    source: Literal["api", "cache"]
    is_expired: bool = False
    next_update: str
    rates_count: int = Field(..., ge=0)
    api_quota_used: Optional[int] = None
    api_quota_total: Optional[int] = None


class ProviderLatestResponse(BaseModel):
    """Body of the provider's /latest endpoint. Anything else is rejected."""

    success: bool
    base: Optional[str] = None
    rates: Dict[str, float]

    @field_validator("success")
    def must_succeed(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("provider reported success=false")
        return v

    @field_validator("rates")
    def valid_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        if not v:
            raise ValueError("rates must not be empty")
        for code, rate in v.items():
            if not _CODE_RE.match(code):
                raise ValueError(f"invalid currency code {code!r}")
            if not math.isfinite(rate) or rate <= 0:
                raise ValueError(f"invalid rate for {code}: {rate!r}")
        return v


class CurrencyConversionIn(CamelModel):
    amount: float = Field(..., allow_inf_nan=False)
    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)

    @field_validator("from_currency", "to_currency", mode="before")
    def upper_code(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class MoneyOut(BaseModel):
    amount: float
    currency: str


class CurrencyConversionOut(CamelModel):
    original: MoneyOut
    converted: MoneyOut
    exchange_rate: float
    source: Literal["cache", "expired-cache"]
    is_expired: bool
    last_updated: str
    timestamp: str


class RefreshRatesOut(CamelModel):
    success: bool
    rates_count: int
    last_updated: str
    next_update: str


class CurrencyInfo(BaseModel):
    code: str
    name: str
    symbol: str


class CurrencyListOut(BaseModel):
    currencies: list[CurrencyInfo]
