"""Pydantic models for the currency conversion tool."""

from .constants import (
    BASE_CURRENCY,
    CURRENCY_CATALOG,
    TOOL_ID,
)  # re-export
from .rates import (
    RateMetadata,
    ProviderLatestResponse,
    CurrencyConversionIn,
    CurrencyConversionOut,
    RefreshRatesOut,
    CurrencyListOut,
)

__all__ = [
    "BASE_CURRENCY",
    "CURRENCY_CATALOG",
    "TOOL_ID",
    "RateMetadata",
    "ProviderLatestResponse",
    "CurrencyConversionIn",
    "CurrencyConversionOut",
    "RefreshRatesOut",
    "CurrencyListOut",
]
