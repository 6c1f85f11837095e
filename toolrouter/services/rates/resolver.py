from __future__ import annotations

from typing import Mapping

from toolrouter.core.errors import CurrencyNotFoundError
from toolrouter.models.constants import BASE_CURRENCY

"""Cross-rate computation over a base-currency rate table.

rates[code] is units of `code` per one unit of BASE_CURRENCY; the base itself
is never a key. Every pair is resolved through the base:

    from -> BASE -> to  ==  (1 / rates[from]) * rates[to]
"""


def is_quoted(currency: str, rates: Mapping[str, float]) -> bool:
    if currency == BASE_CURRENCY:
        return True
    rate = rates.get(currency)
    return rate is not None and rate > 0


def _quote(currency: str, rates: Mapping[str, float]) -> float:
    if not is_quoted(currency, rates):
        raise CurrencyNotFoundError(currency)
    return rates[currency]


def cross_rate(from_currency: str, to_currency: str, rates: Mapping[str, float]) -> float:
    if from_currency == to_currency:
        if from_currency != BASE_CURRENCY:
            _quote(from_currency, rates)
        return 1.0
    if from_currency == BASE_CURRENCY:
        return _quote(to_currency, rates)
    if to_currency == BASE_CURRENCY:
        return 1 / _quote(from_currency, rates)
    return (1 / _quote(from_currency, rates)) * _quote(to_currency, rates)
