"""OAuth round trip with TrueLayer and the dashboard aggregation endpoint."""

from __future__ import annotations

import logging
import secrets
import uuid

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from ...core.time_ranges import default_build_range, recent_month_options
from ...dashboard.aggregate import build_dashboard, resolve_token_map
from ...dashboard.models import MonthRange
from ...dashboard.snapshot import dump_entries
from ...errors import ConfigurationError, RequestValidationError, UpstreamError
from ...storage import AccountTokenContext, SessionState, merge_accounts, migrate_token_context
from ...storage.session_store import is_valid_session_id
from ..dependencies import (
    CONNECT_PATH,
    STATE_COOKIE,
    STATE_COOKIE_MAX_AGE,
    ClientDep,
    DisplayTzDep,
    SessionIdDep,
    SessionStoreDep,
    SettingsDep,
    set_session_cookie,
)
from ..schemas import DashboardRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _accounts_json(accounts) -> list[dict]:
    return [a.model_dump(mode="json", exclude_none=True) for a in accounts]


@router.get("/api/truelayer/connect")
async def connect(
    client: ClientDep,
    store: SessionStoreDep,
    settings: SettingsDep,
    session_id: SessionIdDep,
) -> RedirectResponse:
    """Redirect to the TrueLayer consent screen with a fresh anti-CSRF state."""
    state = str(uuid.uuid4())
    auth_url = client.create_auth_url(state=state)

    response = RedirectResponse(auth_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    if not is_valid_session_id(session_id):
        set_session_cookie(response, store.new_session_id(), settings)
    return response


@router.get("/callback")
async def callback(
    request: Request,
    client: ClientDep,
    store: SessionStoreDep,
    settings: SettingsDep,
    tz: DisplayTzDep,
    session_id: SessionIdDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> JSONResponse:
    """
    OAuth redirect target.

    On success the newly authorised accounts are merged into the session together
    with their per-account token context. On failure the previously connected
    accounts are returned so the client can offer to retry the connect flow.
    """
    session = store.load(session_id) or SessionState()
    expected_state = request.cookies.get(STATE_COOKIE)

    def fail(message: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": message,
                "accounts": _accounts_json(session.connected_accounts),
                "connectUrl": CONNECT_PATH,
            },
        )

    if error:
        return fail(error_description or error)

    if not code:
        return fail("Missing authorization code in callback URL.")

    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        return fail("Invalid OAuth state. Please try connecting again.")

    try:
        tokens = await client.exchange_code(code)
        accounts = await client.list_accounts(tokens.access_token)
    except (UpstreamError, ConfigurationError) as e:
        logger.warning("TrueLayer callback error: %s", e)
        return fail(str(e))

    previous_ids = [a.account_id for a in session.connected_accounts]
    contexts = migrate_token_context(session.token_context, previous_ids).upsert(
        AccountTokenContext(
            account_id=a.account_id,
            access_token=tokens.access_token,
            expires_in=tokens.expires_in,
        )
        for a in accounts
    )
    session.connected_accounts = merge_accounts(session.connected_accounts, accounts)
    session.token_context = contexts

    if not is_valid_session_id(session_id):
        session_id = store.new_session_id()
    store.save(session_id, session)

    logger.info("Connected %d account(s), %d in session", len(accounts), len(session.connected_accounts))

    start_month, end_month = default_build_range(tz)
    response = JSONResponse(
        content={
            "accounts": _accounts_json(session.connected_accounts),
            "expiresIn": tokens.expires_in,
            "defaultRange": {"startMonth": start_month, "endMonth": end_month},
            "monthOptions": recent_month_options(tz),
        }
    )
    set_session_cookie(response, session_id, settings)
    response.delete_cookie(STATE_COOKIE, path="/")
    return response


@router.post("/api/truelayer/dashboard")
async def dashboard(
    body: DashboardRequest,
    client: ClientDep,
    store: SessionStoreDep,
    session_id: SessionIdDep,
) -> JSONResponse:
    """
    Aggregate balances and transactions for the given accounts.

    Accepts a fallback accessToken, per-account accountContexts, or both. Without
    either (and without accounts), the caller's session supplies them.
    """
    session = store.load(session_id)

    access_token = body.access_token
    token_by_account = resolve_token_map((c.account_id, c.access_token) for c in body.account_contexts)
    accounts = body.accounts

    if session is not None:
        if not (access_token or "").strip() and not token_by_account and session.token_context:
            token_by_account = migrate_token_context(
                session.token_context,
                [a.account_id for a in session.connected_accounts],
            ).token_map()
        if not accounts:
            accounts = session.connected_accounts

    try:
        entries = await build_dashboard(
            client,
            accounts,
            access_token=access_token,
            token_by_account=token_by_account,
            income_account_ids=body.income_account_ids,
            start_month=body.start_month,
            end_month=body.end_month,
        )
    except RequestValidationError:
        raise
    except Exception as e:
        logger.exception("Dashboard aggregation failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e) or "Failed to load dashboard account data."},
        )

    if session is not None:
        session.dashboard = entries
        session.date_range = MonthRange(start_month=body.start_month, end_month=body.end_month)
        session.connected_accounts = merge_accounts(session.connected_accounts, accounts)
        store.save(session_id, session)

    return JSONResponse(content={"accounts": dump_entries(entries)})
