"""
Preloading service: the in-memory cache behind the main screens.

On sign-in the app fetches programs, coaches and logbook entries in
parallel so those screens render instantly. This module owns that cache
and the loading/error state that goes with it.

Rules the rest of the app relies on:
- A cache entry of None means "never fetched (or cleared)"; an empty list
  means "fetched, and the backend had nothing". Both states are kept apart.
- At most one fetch per resource is in flight. A second caller joins the
  first fetch and gets the same result.
- Fetch failures are recorded, not raised. A failed resource ends up as an
  empty list with an error message next to it.
- Clearing a resource starts a new cache generation. A fetch begun before
  the clear still settles and releases its loading flag, but its result is
  dropped, and the next preload starts a fresh fetch instead of joining it.
  Data fetched for one signed-in user never lands after a sign-out.
- Only this class mutates its state. Everyone else reads through accessors
  or subscribes for change notifications.

Concurrency is cooperative (asyncio): the "already loading" check and the
flag being set happen without a suspension point in between, so no lock
is needed.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Callable, Optional, Protocol

from .errors import FetchError, PreloadTimeoutError
from .models import CacheStatus, FetchResult, ResourceKey, ResourceName, resolve_resource
from .transforms import TRANSFORMS

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class DataSource(Protocol):
    """
    Interface for the backend data-access functions.

    Implementations may either return a FetchResult carrying an error or
    raise; the service treats both the same way.
    """

    async def fetch_programs(self) -> FetchResult:
        ...

    async def fetch_coaches(self) -> FetchResult:
        ...

    async def fetch_logbook_entries(self) -> FetchResult:
        ...


_FETCHERS: dict[ResourceName, str] = {
    ResourceName.PROGRAMS: "fetch_programs",
    ResourceName.COACHES: "fetch_coaches",
    ResourceName.LOGBOOK: "fetch_logbook_entries",
}


def _fallback_message(name: ResourceName) -> str:
    return f"Failed to load {name.value}"


def _error_message(error: object, name: ResourceName) -> str:
    """Pull a message out of an exception or an error object from the backend."""
    if isinstance(error, str):
        return error or _fallback_message(name)
    if isinstance(error, Mapping):
        message = error.get("message")
    else:
        message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error) or _fallback_message(name)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class PreloadingService:
    """
    Cache/fetch coordinator for the three preloaded resources.

    One instance per running app, built by the application factory and
    handed to whoever needs it. There is no module-level singleton.
    """

    def __init__(self, data_source: DataSource) -> None:
        self._data_source = data_source
        self._cache: dict[ResourceName, Optional[list]] = {name: None for name in ResourceName}
        self._loading: dict[ResourceName, bool] = {name: False for name in ResourceName}
        self._errors: dict[ResourceName, Optional[str]] = {name: None for name in ResourceName}
        self._generations: dict[ResourceName, int] = {name: 0 for name in ResourceName}
        # resource -> (generation the fetch started in, fetch task)
        self._in_flight: dict[ResourceName, tuple[int, asyncio.Task]] = {}
        self._all_loading = False
        self._listeners: list[Listener] = []

    # -- subscriptions ------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener()` after every state change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                # runs inside fetch bookkeeping; must not raise
                logger.exception("Preload listener failed")

    # -- fetching -----------------------------------------------------------

    async def preload_all(self) -> dict[ResourceName, Optional[list]]:
        """
        Fetch every resource concurrently and wait for all of them to settle.

        Never raises for a fetch failure: each resource records its own
        error. Returns a snapshot of the cache afterwards.
        """
        logger.info("Starting to preload all data")
        names = list(ResourceName)

        self._all_loading = True
        self._notify()
        try:
            results = await asyncio.gather(
                *(self.preload_resource(name) for name in names),
                return_exceptions=True,
            )
        finally:
            self._all_loading = False
            self._notify()

        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Preload task ended unexpectedly",
                    extra={"resource": name.value, "error": repr(result)}
                )
            elif self._errors[name]:
                logger.warning(
                    "Resource preload failed",
                    extra={"resource": name.value, "error": self._errors[name]}
                )
            else:
                logger.info(
                    "Resource preloaded",
                    extra={"resource": name.value, "count": len(result)}
                )

        logger.info("Preloading complete", extra={"status": self.get_cache_status().as_dict()})
        return self.snapshot()

    async def preload_resource(self, name: ResourceKey) -> list:
        """
        Fetch one resource into the cache and return its value.

        If that resource is already loading in the current cache generation,
        join the in-flight fetch instead of starting another. On failure the
        cache entry becomes [] and the error is recorded; nothing is raised.

        The fetch runs as its own task, so a caller that gives up early
        (cancellation, timeout) leaves it running to completion.
        """
        name = resolve_resource(name)
        generation = self._generations[name]

        entry = self._in_flight.get(name)
        if entry is not None and entry[0] == generation:
            task = entry[1]
            logger.debug("Already loading, joining in-flight fetch", extra={"resource": name.value})
        else:
            self._loading[name] = True
            self._errors[name] = None
            task = asyncio.get_running_loop().create_task(self._fetch(name, generation))
            self._in_flight[name] = (generation, task)
            self._notify()

        return await asyncio.shield(task)

    async def preload_programs(self) -> list:
        return await self.preload_resource(ResourceName.PROGRAMS)

    async def preload_coaches(self) -> list:
        return await self.preload_resource(ResourceName.COACHES)

    async def preload_logbook(self) -> list:
        return await self.preload_resource(ResourceName.LOGBOOK)

    async def _fetch(self, name: ResourceName, generation: int) -> list:
        fetch = getattr(self._data_source, _FETCHERS[name])
        logger.debug("Fetching resource", extra={"resource": name.value})

        try:
            try:
                result = await fetch()
                if result.error is not None:
                    raise FetchError(name, _error_message(result.error, name))
                records = [] if result.data is None else TRANSFORMS[name](result.data)
                error = None
            except Exception as e:
                error = _error_message(e, name)
                logger.error(
                    "Failed to preload resource",
                    extra={"resource": name.value, "error": error}
                )
                records = []
            self._store(name, generation, records, error)
        finally:
            self._release(name)
            self._notify()

        return records

    def _store(
        self,
        name: ResourceName,
        generation: int,
        records: list,
        error: Optional[str],
    ) -> None:
        if generation != self._generations[name]:
            logger.info(
                "Discarding fetch result from before the cache was cleared",
                extra={"resource": name.value}
            )
            return
        self._errors[name] = error
        self._cache[name] = records
        logger.debug(
            "Cached resource",
            extra={"resource": name.value, "count": len(records)}
        )

    def _release(self, name: ResourceName) -> None:
        """Clear the loading flag, unless a newer fetch of `name` has taken over."""
        entry = self._in_flight.get(name)
        if entry is not None and entry[1] is asyncio.current_task():
            self._loading[name] = False
            del self._in_flight[name]

    async def refresh(self, name: ResourceKey) -> list:
        """Drop the cached value and fetch it again."""
        name = resolve_resource(name)
        logger.info("Refreshing resource", extra={"resource": name.value})
        self.clear_cache(name)
        return await self.preload_resource(name)

    # -- reads --------------------------------------------------------------

    def get_cached_data(self, name: ResourceKey) -> Optional[list]:
        return self._cache[resolve_resource(name)]

    def is_loading(self, name: ResourceKey) -> bool:
        return self._loading[resolve_resource(name)]

    def is_all_loading(self) -> bool:
        return self._all_loading

    def get_error(self, name: ResourceKey) -> Optional[str]:
        return self._errors[resolve_resource(name)]

    def has_data(self, name: ResourceKey) -> bool:
        """True once a fetch has settled, even if it produced an empty list."""
        return self._cache[resolve_resource(name)] is not None

    def snapshot(self) -> dict[ResourceName, Optional[list]]:
        return dict(self._cache)

    def get_cache_status(self) -> CacheStatus:
        return CacheStatus(
            counts={name: len(value or []) for name, value in self._cache.items()},
            loading=dict(self._loading),
            errors=dict(self._errors),
        )

    # -- invalidation -------------------------------------------------------

    def clear_cache(self, name: Optional[ResourceKey] = None) -> None:
        """
        Forget cached values and errors for one resource, or all of them.

        Loading flags are left alone: they belong to fetches that are still
        running and will clear them when they settle. Those fetches' results
        are discarded.
        """
        names = list(ResourceName) if name is None else [resolve_resource(name)]
        for resource in names:
            self._generations[resource] += 1
            self._cache[resource] = None
            self._errors[resource] = None
        self._notify()


async def fetch_with_timeout(
    service: PreloadingService,
    name: ResourceKey,
    timeout_seconds: float,
) -> list:
    """
    Screen-side deadline around a single resource fetch.

    Raises PreloadTimeoutError if the deadline passes first. The underlying
    fetch keeps running and still records its own result; this wrapper
    never touches the service's state.
    """
    name = resolve_resource(name)
    try:
        return await asyncio.wait_for(service.preload_resource(name), timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(
            "Fetch timed out",
            extra={"resource": name.value, "timeout_seconds": timeout_seconds}
        )
        raise PreloadTimeoutError(name, timeout_seconds)
