"""Domain constants for the currency tool.

BASE_CURRENCY is the only currency rates are quoted against; it is never a key
of a stored rate table.
"""

from typing import Dict, List

BASE_CURRENCY: str = "USD"
TOOL_ID: str = "unit-converter"

RATES_KEY_TEMPLATE = "forex:rates:{base}"
METADATA_KEY_TEMPLATE = "forex:metadata:{base}"

SOURCE_API = "api"
SOURCE_CACHE = "cache"
SOURCE_EXPIRED_CACHE = "expired-cache"

TRIGGER_SCHEDULED = "scheduled"
TRIGGER_MANUAL = "manual"

CURRENCY_CATALOG: List[Dict[str, str]] = [
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "EUR", "name": "Euro", "symbol": "€"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
    {"code": "JPY", "name": "Japanese Yen", "symbol": "¥"},
    {"code": "CAD", "name": "Canadian Dollar", "symbol": "C$"},
    {"code": "AUD", "name": "Australian Dollar", "symbol": "A$"},
    {"code": "CHF", "name": "Swiss Franc", "symbol": "CHF"},
    {"code": "CNY", "name": "Chinese Yuan", "symbol": "¥"},
    {"code": "INR", "name": "Indian Rupee", "symbol": "₹"},
    {"code": "BRL", "name": "Brazilian Real", "symbol": "R$"},
    {"code": "MXN", "name": "Mexican Peso", "symbol": "$"},
    {"code": "KRW", "name": "South Korean Won", "symbol": "₩"},
]
