"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

from datetime import tzinfo
from typing import Annotated, AsyncIterator

from fastapi import Depends, Request, Response

from ..config import Settings
from ..core.time_ranges import load_tz
from ..storage import SessionState, SessionStore
from ..truelayer import TrueLayerClient

SESSION_COOKIE = "kiwi_session"
STATE_COOKIE = "truelayer_oauth_state"
STATE_COOKIE_MAX_AGE = 600
CONNECT_PATH = "/api/truelayer/connect"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


async def get_client(request: Request) -> AsyncIterator[TrueLayerClient]:
    client = request.app.state.client_factory(request.app.state.settings)
    try:
        yield client
    finally:
        await client.aclose()


def get_session_id(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE)


def get_session(request: Request) -> SessionState | None:
    return get_session_store(request).load(get_session_id(request))


def get_display_tz(request: Request) -> tzinfo:
    return load_tz(get_settings(request).display_tz)


SettingsDep = Annotated[Settings, Depends(get_settings)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
ClientDep = Annotated[TrueLayerClient, Depends(get_client)]
SessionIdDep = Annotated[str | None, Depends(get_session_id)]
SessionDep = Annotated[SessionState | None, Depends(get_session)]
DisplayTzDep = Annotated[tzinfo, Depends(get_display_tz)]


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
