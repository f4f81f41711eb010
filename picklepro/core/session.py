"""
Authentication session model.

The preload layer only needs to know two things about the signed-in user:
whether a session is authenticated, and who it belongs to. Signing in,
token refresh and profile loading belong to the auth subsystem; this module
describes the contract the rest of the core observes.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

SessionListener = Callable[["AuthSession"], None]


@dataclass(frozen=True)
class User:
    """The authenticated user, as far as the data layer cares."""
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    """
    Snapshot of the authentication state.

    Frozen because a session change is a new snapshot, not a mutation.
    Listeners compare snapshots to decide whether anything happened.
    """
    is_authenticated: bool = False
    user: Optional[User] = None

    @classmethod
    def anonymous(cls) -> "AuthSession":
        return cls(is_authenticated=False, user=None)

    @classmethod
    def for_user(cls, user: User) -> "AuthSession":
        return cls(is_authenticated=True, user=user)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None


class SessionSource(Protocol):
    """
    Interface for anything that publishes session changes.

    The preload provider subscribes to this; it never signs users in or out.
    """

    @property
    def current(self) -> AuthSession:
        """The latest session snapshot."""
        ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        ...


class SessionStore:
    """
    In-memory session holder.

    Used by the application factory and by tests. A real auth client would
    call sign_in/sign_out from its own state-change callback.
    """

    def __init__(self, session: Optional[AuthSession] = None) -> None:
        self._session = session or AuthSession.anonymous()
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> AuthSession:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, user: User) -> AuthSession:
        logger.info("Session signed in", extra={"user_id": user.id})
        return self.set(AuthSession.for_user(user))

    def sign_out(self) -> AuthSession:
        logger.info("Session signed out", extra={"user_id": self._session.user_id})
        return self.set(AuthSession.anonymous())

    def set(self, session: AuthSession) -> AuthSession:
        self._session = session
        self.publish()
        return session

    def publish(self) -> None:
        """Re-emit the current session (token refresh, re-render)."""
        for listener in list(self._listeners):
            listener(self._session)
