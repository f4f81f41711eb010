"""
Preloading and caching of the main screens' data.

Contains the cache/fetch coordinator, the reactive provider that binds it
to the session, the per-resource transforms and the debug overlay.
"""

from .debug import render_cache_status
from .errors import FetchError, PreloadError, PreloadTimeoutError, RefreshError
from .models import (
    CacheStatus,
    Coach,
    Exercise,
    FetchResult,
    LogbookEntry,
    Program,
    ResourceName,
    Routine,
)
from .provider import PreloadProvider, PreloadState
from .service import DataSource, PreloadingService, fetch_with_timeout

__all__ = [
    "CacheStatus",
    "Coach",
    "DataSource",
    "Exercise",
    "FetchError",
    "FetchResult",
    "LogbookEntry",
    "PreloadError",
    "PreloadProvider",
    "PreloadState",
    "PreloadTimeoutError",
    "PreloadingService",
    "Program",
    "RefreshError",
    "ResourceName",
    "Routine",
    "fetch_with_timeout",
    "render_cache_status",
]
