"""Money / rounding helpers.

Centralized so conversion results and telemetry use identical rounding
semantics (half-up, not Python's banker's rounding).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def percentage(part: float, whole: float) -> float | None:
    if not whole:
        return None
    return round2(part / whole * 100)
