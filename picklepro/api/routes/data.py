"""
Preloaded data endpoints.

These are what the app's screens call. Reads follow the screen read path:
1. The provider's mirrored data (filled by the sign-in preload)
2. The preloading service's cache (filled by an earlier direct fetch)
3. An on-demand fetch with a deadline, if nothing is cached yet

A resource that failed to load comes back as an empty list plus an error
message, never as a 5xx. Only an explicit refresh reports failure as an
HTTP error, so the app's retry button can show it.
"""

import dataclasses
import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.preload.errors import PreloadTimeoutError, RefreshError
from ...core.preload.service import fetch_with_timeout
from ..dependencies import (
    PreloadingServiceDep,
    PreloadProviderDep,
    ResourceNameDep,
    SettingsDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class DataResponse(BaseModel):
    """One resource as a screen sees it."""
    resource: str = Field(description="programs, coaches or logbook")
    items: list[dict[str, Any]] = Field(description="Transformed records")
    loading: bool = Field(description="True while a fetch is in flight; treat items as stale")
    error: Optional[str] = Field(None, description="Last error for this resource, if any")


class PreloadResponse(BaseModel):
    """Result of a full preload."""
    counts: dict[str, int]
    errors: dict[str, Optional[str]]


def _serialize(records: Optional[list]) -> list[dict[str, Any]]:
    return [dataclasses.asdict(record) for record in records or []]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/preload",
    response_model=PreloadResponse,
    status_code=status.HTTP_200_OK,
    summary="Preload all data",
    description="Fetch programs, coaches and logbook entries concurrently. Never fails as a whole.",
)
async def preload_all(provider: PreloadProviderDep) -> PreloadResponse:
    await provider.preload_all_data()
    cache_status = provider.get_cache_status()
    return PreloadResponse(
        counts={name.value: count for name, count in cache_status.counts.items()},
        errors={name.value: error for name, error in cache_status.errors.items()},
    )


@router.get(
    "/{resource}",
    response_model=DataResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a resource",
    description="Cached data for programs, coaches or logbook, fetched on demand if missing.",
)
async def get_resource(
    name: ResourceNameDep,
    provider: PreloadProviderDep,
    service: PreloadingServiceDep,
    settings: SettingsDep,
) -> DataResponse:
    items = provider.get_data_with_fallback(name)
    error = provider.get_data_error(name) or service.get_error(name)

    if items is None:
        logger.info("Nothing cached, fetching on demand", extra={"resource": name.value})
        try:
            items = await fetch_with_timeout(service, name, settings.preload_fetch_timeout_seconds)
            error = service.get_error(name)
        except PreloadTimeoutError as e:
            items = []
            error = str(e)

    return DataResponse(
        resource=name.value,
        items=_serialize(items),
        loading=provider.is_data_loading(name) or service.is_loading(name),
        error=error,
    )


@router.post(
    "/{resource}/refresh",
    response_model=DataResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh a resource",
    description="Drop the cached value and fetch again. Returns 502 if the backend fetch fails.",
    responses={502: {"description": "Backend fetch failed"}},
)
async def refresh_resource(
    name: ResourceNameDep,
    provider: PreloadProviderDep,
) -> DataResponse:
    try:
        items = await provider.refresh_data(name)
    except RefreshError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to refresh {name.value}: {e}",
        )

    return DataResponse(
        resource=name.value,
        items=_serialize(items),
        loading=provider.is_data_loading(name),
        error=None,
    )
