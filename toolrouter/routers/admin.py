from __future__ import annotations

from fastapi import APIRouter, Depends

from toolrouter.models.constants import TRIGGER_MANUAL
from toolrouter.models.rates import RefreshRatesOut
from toolrouter.services.rates.sync import ForexSyncService
from .deps import get_sync_service, require_admin

"""Admin router: manual forex refresh.

POST /api/admin/refresh-rates runs the same sync as the daily schedule, but
synchronously and with trigger='manual'. An UpstreamError propagates to the
registered handler (502 {"success": false, "error": ...}); the stored rates
are untouched in that case.
"""

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post(
    "/refresh-rates",
    response_model=RefreshRatesOut,
    response_model_by_alias=True,
    summary="Fetch fresh rates from the provider now",
)
def refresh_rates(
    _: bool = Depends(require_admin),
    service: ForexSyncService = Depends(get_sync_service),
):
    metadata = service.sync(TRIGGER_MANUAL)
    return RefreshRatesOut(
        success=True,
        rates_count=metadata.rates_count,
        last_updated=metadata.last_updated,
        next_update=metadata.next_update,
    )
