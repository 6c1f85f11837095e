from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

logger = logging.getLogger("toolrouter.errors")

RETRY_AFTER_SECONDS = 3600


class RateServiceError(Exception):
    """Base class for exchange rate failures."""


class UpstreamError(RateServiceError):
    """The rate provider was unreachable or returned an unusable response."""


class RatesUnavailableError(RateServiceError):
    """No rate table has ever been stored (cold start)."""


class CurrencyNotFoundError(RateServiceError):
    def __init__(self, currency: str):
        super().__init__(f"Currency {currency} not found in rates")
        self.currency = currency


def not_found_handler(request: Request, exc):  # type: ignore
    if getattr(exc, "status_code", 404) != 404:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "not_found",
            "detail": f"No route for {request.method} {request.url.path}",
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def rates_unavailable_response(detail: str = "Exchange rates are not available yet.") -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "service_unavailable", "detail": detail},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


def rates_unavailable_handler(request: Request, exc: RatesUnavailableError):  # type: ignore
    return rates_unavailable_response(str(exc) or "Exchange rates are not available yet.")


def currency_not_found_response(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "currency_not_found", "detail": detail},
    )


def currency_not_found_handler(request: Request, exc: CurrencyNotFoundError):  # type: ignore
    return currency_not_found_response(str(exc))


def upstream_error_handler(request: Request, exc: UpstreamError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return internal_error_response()


def internal_error_response(detail: str = "An unexpected error occurred.") -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": detail,
        },
    )
