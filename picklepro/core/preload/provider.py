"""
Preload provider: binds the preloading service to the session and the UI.

The service is plain state. Screens want reactive state they can render
from, and they want the cache to follow the signed-in user. The provider
does both:

- When a user signs in, it waits a short debounce (session/token state is
  still settling) and runs a full preload.
- When the session signs out, it clears the service and its own mirror.
- It keeps its own copy of data/loading/errors and notifies subscribers
  when that copy changes. It never writes to the service's state.

Error policy differs from the service on purpose: `refresh_data` is the
user-initiated retry path, so it raises RefreshError when the fetch fails.
Everything else resolves quietly and leaves an error message to display.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..session import AuthSession, SessionSource
from .errors import RefreshError
from .models import CacheStatus, ResourceKey, ResourceName, resolve_resource
from .service import PreloadingService

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1

Listener = Callable[[], None]


def _empty_data() -> dict[ResourceName, Optional[list]]:
    return {name: None for name in ResourceName}


def _empty_flags() -> dict[ResourceName, bool]:
    return {name: False for name in ResourceName}


def _empty_errors() -> dict[ResourceName, Optional[str]]:
    return {name: None for name in ResourceName}


@dataclass
class PreloadState:
    """The provider's reactive mirror of the service."""
    data: dict[ResourceName, Optional[list]] = field(default_factory=_empty_data)
    loading: dict[ResourceName, bool] = field(default_factory=_empty_flags)
    errors: dict[ResourceName, Optional[str]] = field(default_factory=_empty_errors)
    all_loading: bool = False

    def copy(self) -> "PreloadState":
        return PreloadState(
            data=dict(self.data),
            loading=dict(self.loading),
            errors=dict(self.errors),
            all_loading=self.all_loading,
        )


class PreloadProvider:
    """
    Reactive adapter over a PreloadingService.

    Usage:
        provider = PreloadProvider(service, debounce_seconds=0.1)
        provider.bind_session(session_store)
        ...
        programs = provider.get_data_with_fallback("programs")
    """

    def __init__(
        self,
        service: PreloadingService,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._service = service
        self._debounce_seconds = debounce_seconds
        self._state = PreloadState()
        self._listeners: list[Listener] = []
        self._refreshing: set[ResourceName] = set()
        self._active_user_id: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None
        self._unsubscribe_session: Optional[Callable[[], None]] = None
        self._unsubscribe_service = service.subscribe(self._on_service_change)

    # -- wiring ---------------------------------------------------------------

    def bind_session(self, source: SessionSource) -> None:
        """Follow `source` and apply its current session right away."""
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
        self._unsubscribe_session = source.subscribe(self.on_session_change)
        self.on_session_change(source.current)

    def close(self) -> None:
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        self._unsubscribe_service()
        self._cancel_pending()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _on_service_change(self) -> None:
        for name in ResourceName:
            self._state.loading[name] = (
                self._service.is_loading(name) or name in self._refreshing
            )
        self._notify()

    # -- session lifecycle ----------------------------------------------------

    def on_session_change(self, session: AuthSession) -> None:
        """
        React to a session snapshot.

        Preloads only when the authenticated user changes; a repeated
        snapshot for the same user (re-render, token refresh) is a no-op.
        Must be called from a running event loop.
        """
        if session.is_authenticated and session.user is not None:
            if session.user.id == self._active_user_id:
                return
            logger.info("User authenticated, scheduling preload", extra={"user_id": session.user.id})
            self._active_user_id = session.user.id
            self._cancel_pending()
            self._pending = asyncio.get_running_loop().create_task(self._preload_after_debounce())
        elif not session.is_authenticated:
            if self._active_user_id is not None:
                logger.info("User signed out, clearing preloaded data", extra={"user_id": self._active_user_id})
            self._active_user_id = None
            self._cancel_pending()
            self.clear_all_data()

    async def _preload_after_debounce(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        await self.preload_all_data()

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def wait_for_preload(self) -> None:
        """Wait for a scheduled sign-in preload, if there is one."""
        pending = self._pending
        if pending is None:
            return
        try:
            await asyncio.shield(pending)
        except asyncio.CancelledError:
            # cancelled by a sign-out; propagate only if we were cancelled too
            if not pending.cancelled():
                raise

    # -- actions --------------------------------------------------------------

    async def preload_all_data(self) -> dict[ResourceName, Optional[list]]:
        self._state.all_loading = True
        self._notify()
        try:
            cached = await self._service.preload_all()
            for name in ResourceName:
                self._state.data[name] = cached[name]
                self._state.loading[name] = self._service.is_loading(name)
                self._state.errors[name] = self._service.get_error(name)
        finally:
            self._state.all_loading = False
            self._notify()
        return cached

    async def refresh_data(self, name: ResourceKey) -> list:
        """
        Re-fetch one resource on the user's request.

        Raises RefreshError carrying the backend's message if the fetch
        fails; the same message is left in `get_data_error(name)`.
        """
        name = resolve_resource(name)
        self._refreshing.add(name)
        self._state.loading[name] = True
        self._state.errors[name] = None
        self._notify()

        try:
            refreshed = await self._service.refresh(name)
            failure = self._service.get_error(name)
            if failure is not None:
                raise RefreshError(name, failure)
        except Exception as e:
            logger.error(
                "Failed to refresh data",
                extra={"resource": name.value, "error": str(e)}
            )
            self._state.errors[name] = str(e)
            raise
        else:
            self._state.data[name] = refreshed
            logger.info("Data refreshed", extra={"resource": name.value, "count": len(refreshed)})
            return refreshed
        finally:
            self._refreshing.discard(name)
            self._state.loading[name] = self._service.is_loading(name)
            self._notify()

    def clear_all_data(self) -> None:
        self._state = PreloadState()
        self._refreshing.clear()
        self._service.clear_cache()
        self._notify()

    # -- reads ----------------------------------------------------------------

    @property
    def state(self) -> PreloadState:
        return self._state.copy()

    def get_preloaded_data(self, name: ResourceKey) -> Optional[list]:
        return self._state.data[resolve_resource(name)]

    def get_data_with_fallback(self, name: ResourceKey) -> Optional[list]:
        """Mirrored data if present, otherwise whatever the service has cached."""
        name = resolve_resource(name)
        data = self._state.data[name]
        if data is not None:
            return data
        return self._service.get_cached_data(name)

    def has_preloaded_data(self, name: ResourceKey) -> bool:
        return self._state.data[resolve_resource(name)] is not None

    def is_data_loading(self, name: ResourceKey) -> bool:
        return self._state.loading[resolve_resource(name)]

    def is_all_data_loading(self) -> bool:
        return self._state.all_loading

    def get_data_error(self, name: ResourceKey) -> Optional[str]:
        return self._state.errors[resolve_resource(name)]

    def get_cache_status(self) -> CacheStatus:
        return self._service.get_cache_status()
