import asyncio
import contextlib
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .db.kv import KeyValueStore, make_kv_store
from .db.migrate import apply_migrations
from .routers import admin, currency, health
from .services.catalog import CurrencyCatalog
from .services.rates.base import RateProvider
from .services.rates.conversion import CurrencyConverter
from .services.rates.freshness import FreshnessPolicy
from .services.rates.providers import make_rate_provider
from .services.rates.store import RateStore
from .services.rates.sync import ForexSyncService
from .services.scheduler import run_daily_sync_loop
from .services.telemetry import TelemetryClient, TelemetrySink

logger = logging.getLogger("toolrouter")


def create_app(
    settings_override: Settings | None = None,
    *,
    provider: RateProvider | None = None,
    telemetry: TelemetrySink | None = None,
    kv: KeyValueStore | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    provider / telemetry / kv replace the collaborators built from settings.
    """
    settings = settings_override or get_settings()
    if settings_override is not None:
        settings.init_post_load()
    init_logging(debug=settings.debug)

    if kv is None:
        if settings.kv_backend == "sqlite":
            try:
                apply_migrations(Path(settings.db_path))  # type: ignore[arg-type]
            except Exception:
                logger.exception("failed to apply migrations on startup")
                raise
        kv = make_kv_store(settings)

    policy = FreshnessPolicy(
        close_hour=settings.market_close_hour_utc,
        offset_minutes=settings.next_update_offset_minutes,
    )
    telemetry = telemetry or TelemetryClient(
        str(settings.analytics_url) if settings.analytics_url else None,
        max_pending=settings.analytics_max_pending,
    )
    store = RateStore(kv, ttl_seconds=settings.rates_store_ttl_seconds)
    sync_service = ForexSyncService(
        provider or make_rate_provider(settings), store, telemetry, policy
    )
    catalog = CurrencyCatalog(store)
    sync_service.add_listener(lambda _meta: catalog.reset())

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if settings.enable_scheduler:
            task = asyncio.create_task(run_daily_sync_loop(sync_service, policy))
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            close = getattr(telemetry, "close", None)
            if callable(close):
                close()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_store = store
    app.state.telemetry = telemetry
    app.state.sync_service = sync_service
    app.state.converter = CurrencyConverter(store, telemetry, policy)
    app.state.catalog = catalog

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(errors.RatesUnavailableError, errors.rates_unavailable_handler)
    app.add_exception_handler(errors.CurrencyNotFoundError, errors.currency_not_found_handler)
    app.add_exception_handler(errors.UpstreamError, errors.upstream_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(currency.router)
    app.include_router(admin.router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} API", "version": settings.version}

    return app


app = create_app()
