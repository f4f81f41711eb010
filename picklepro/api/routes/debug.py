"""
Developer overlay endpoint.

Development only. With DEBUG_OVERLAY_ENABLED unset (production builds)
the endpoint answers 404 and reveals nothing.
"""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from ...core.preload.debug import render_cache_status
from ..dependencies import PreloadProviderDep, SettingsDep

router = APIRouter()


class PreloadDebugResponse(BaseModel):
    status: dict[str, dict[str, Any]]
    all_loading: bool
    overlay: Optional[str]


@router.get(
    "/preload",
    response_model=PreloadDebugResponse,
    summary="Preload cache status",
    include_in_schema=False,
)
async def preload_debug(settings: SettingsDep, provider: PreloadProviderDep) -> PreloadDebugResponse:
    if not settings.debug_overlay_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    cache_status = provider.get_cache_status()
    all_loading = provider.is_all_data_loading()
    return PreloadDebugResponse(
        status=cache_status.as_dict(),
        all_loading=all_loading,
        overlay=render_cache_status(cache_status, all_loading=all_loading, enabled=True),
    )
