"""
Session endpoints.

Stand-ins for the auth subsystem: they flip the in-memory session so the
preload provider sees sign-in and sign-out exactly as it would from a real
auth client. Signing in schedules the debounced preload; signing out
clears the cache.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ...core.session import AuthSession, User
from ..dependencies import SessionStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


class SignInRequest(BaseModel):
    user_id: str = Field(min_length=1, description="Authenticated user's id")
    email: Optional[str] = Field(None, description="User email, informational only")


class SessionResponse(BaseModel):
    is_authenticated: bool
    user_id: Optional[str] = None


def _to_response(session: AuthSession) -> SessionResponse:
    return SessionResponse(
        is_authenticated=session.is_authenticated,
        user_id=session.user_id,
    )


@router.get(
    "",
    response_model=SessionResponse,
    summary="Current session",
)
async def get_session(store: SessionStoreDep) -> SessionResponse:
    return _to_response(store.current)


@router.post(
    "/sign-in",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in",
    description="Mark the session authenticated. Triggers a full preload after a short delay.",
)
async def sign_in(body: SignInRequest, store: SessionStoreDep) -> SessionResponse:
    session = store.sign_in(User(id=body.user_id, email=body.email))
    return _to_response(session)


@router.post(
    "/sign-out",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign out",
    description="End the session and clear all preloaded data.",
)
async def sign_out(store: SessionStoreDep) -> SessionResponse:
    return _to_response(store.sign_out())
