from __future__ import annotations

"""FastAPI dependencies resolving the services built by create_app.

Everything lives on app.state so tests can swap a collaborator (provider,
telemetry sink) on a constructed app without touching module globals.
"""
import secrets

from fastapi import Header, HTTPException, Request

from toolrouter.core.config import Settings
from toolrouter.services.catalog import CurrencyCatalog
from toolrouter.services.rates.conversion import CurrencyConverter
from toolrouter.services.rates.sync import ForexSyncService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_converter(request: Request) -> CurrencyConverter:
    return request.app.state.converter


def get_sync_service(request: Request) -> ForexSyncService:
    return request.app.state.sync_service


def get_catalog(request: Request) -> CurrencyCatalog:
    return request.app.state.catalog


def require_admin(
    request: Request,
    x_admin_token: str | None = Header(default=None),
) -> bool:
    """Admin endpoints are open unless settings.admin_token is configured."""
    expected = get_app_settings(request).admin_token
    if not expected:
        return True
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="admin token required")
    return True
