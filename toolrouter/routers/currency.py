from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from toolrouter.core import errors
from toolrouter.models.rates import (
    CurrencyConversionIn,
    CurrencyConversionOut,
    CurrencyListOut,
    MoneyOut,
    RateMetadata,
)
from toolrouter.services.catalog import CurrencyCatalog
from toolrouter.services.rates.conversion import CurrencyConverter
from toolrouter.services.rates.freshness import format_timestamp, utcnow
from .deps import get_catalog, get_converter

"""Currency conversion endpoints of the unit-converter tool.

Endpoints:
    - POST /api/tools/unit-converter/currency        -> convert an amount
    - GET  /api/tools/unit-converter/currency/rates  -> cache metadata
    - GET  /api/tools/unit-converter/currency/list   -> supported currencies

Conversion never reaches the upstream provider. Every failure on this path is
turned into a structured response here: 503 + Retry-After when no rates were
ever stored, 400 for unknown currencies, 500 otherwise.
"""

logger = logging.getLogger("toolrouter.routers.currency")

router = APIRouter(prefix="/api/tools/unit-converter/currency", tags=["currency"])


@router.post(
    "",
    response_model=CurrencyConversionOut,
    response_model_by_alias=True,
    summary="Convert an amount between two currencies",
    responses={400: {}, 503: {}, 500: {}},
)
async def convert_currency(
    payload: CurrencyConversionIn,
    converter: CurrencyConverter = Depends(get_converter),
):
    try:
        result = converter.convert(
            payload.amount, payload.from_currency, payload.to_currency
        )
    except errors.RatesUnavailableError:
        logger.warning("currency conversion requested before first rate sync")
        return errors.rates_unavailable_response()
    except errors.CurrencyNotFoundError as e:
        return errors.currency_not_found_response(str(e))
    except Exception:
        logger.exception("currency conversion failed")
        return errors.internal_error_response("Currency conversion failed")

    return CurrencyConversionOut(
        original=MoneyOut(amount=result.amount, currency=result.from_currency),
        converted=MoneyOut(amount=result.converted_amount, currency=result.to_currency),
        exchange_rate=result.rate,
        source=result.source,
        is_expired=result.is_expired,
        last_updated=result.last_updated,
        timestamp=format_timestamp(utcnow()),
    )


@router.get(
    "/rates",
    response_model=RateMetadata,
    response_model_by_alias=True,
    summary="Current rate cache metadata",
)
async def get_currency_rates(converter: CurrencyConverter = Depends(get_converter)):
    try:
        return converter.metadata()
    except errors.RatesUnavailableError:
        return errors.rates_unavailable_response("No forex metadata available")


@router.get("/list", response_model=CurrencyListOut, summary="Supported currencies")
async def get_currency_list(catalog: CurrencyCatalog = Depends(get_catalog)):
    return {"currencies": await catalog.get()}
