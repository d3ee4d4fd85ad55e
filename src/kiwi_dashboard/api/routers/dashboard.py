"""Dashboard view, export/import and session endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse, Response

from ...core.time_ranges import bounded_month_options, default_view_range, month_label, order_month_window
from ...dashboard.snapshot import export_dashboard, export_filename, import_dashboard
from ...dashboard.summary import summarize_dashboard
from ...dashboard.transactions import ALL_ACCOUNTS, account_options, build_transaction_view
from ...storage import SessionState
from ...storage.session_store import is_valid_session_id
from ..dependencies import (
    CONNECT_PATH,
    SESSION_COOKIE,
    DisplayTzDep,
    SessionDep,
    SessionIdDep,
    SessionStoreDep,
    SettingsDep,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MONTH_PATTERN = r"^\d{4}-\d{2}$"

FromMonth = Annotated[
    str | None,
    Query(alias="fromMonth", pattern=MONTH_PATTERN, description="First month of the feed, YYYY-MM"),
]
ToMonth = Annotated[
    str | None,
    Query(alias="toMonth", pattern=MONTH_PATTERN, description="Last month of the feed, YYYY-MM"),
]


def _no_data() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "No dashboard data found.", "connectUrl": CONNECT_PATH},
    )


@router.get("/api/dashboard")
async def get_dashboard(
    session: SessionDep,
    settings: SettingsDep,
    tz: DisplayTzDep,
    from_month: FromMonth = None,
    to_month: ToMonth = None,
    search: str = "",
    account: str = ALL_ACCOUNTS,
) -> JSONResponse:
    """
    Render-ready dashboard for the stored snapshot.

    Headline totals always cover the whole snapshot; the transaction feed honours
    the month window, search terms and account selector.
    """
    if session is None or not session.dashboard:
        return _no_data()

    entries = session.dashboard
    stored = (session.date_range.start_month, session.date_range.end_month) if session.date_range else None
    default_from, default_to = default_view_range(
        (tx.timestamp for e in entries for tx in e.transactions),
        tz,
        stored=stored,
    )
    from_month, to_month = order_month_window(from_month or default_from, to_month or default_to)

    view = build_transaction_view(
        entries,
        from_month,
        to_month,
        tz=tz,
        search=search,
        account_selector=account,
    )
    summary = summarize_dashboard(entries)

    date_range = None
    date_range_label = None
    if session.date_range is not None:
        date_range = session.date_range.model_dump(by_alias=True)
        date_range_label = f"{month_label(stored[0])} to {month_label(stored[1])}"

    return JSONResponse(
        content={
            "dateRange": date_range,
            "dateRangeLabel": date_range_label,
            "summary": summary.model_dump(mode="json"),
            "transactions": {
                "fromMonth": from_month,
                "toMonth": to_month,
                "search": search,
                "account": account,
                "groups": [g.model_dump(mode="json", exclude_none=True) for g in view.groups],
                "totals": {
                    cur: t.model_dump(mode="json")
                    for cur, t in view.display_totals(settings.default_currency).items()
                },
            },
            "monthOptions": bounded_month_options(default_from, default_to),
            "accountOptions": [{"value": ALL_ACCOUNTS, "label": "All"}, *account_options(entries)],
        }
    )


@router.get("/api/dashboard/export")
async def export(session: SessionDep) -> Response:
    if session is None or not session.dashboard:
        return _no_data()

    return Response(
        content=export_dashboard(session.dashboard, session.date_range),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/api/dashboard/import")
async def import_data(
    request: Request,
    store: SessionStoreDep,
    settings: SettingsDep,
    session_id: SessionIdDep,
) -> JSONResponse:
    """Replace the session's dashboard snapshot with an exported file."""
    doc = import_dashboard(await request.body())

    session = store.load(session_id) or SessionState()
    session.dashboard = doc.accounts
    session.date_range = doc.date_range

    if not is_valid_session_id(session_id):
        session_id = store.new_session_id()
    store.save(session_id, session)

    logger.info("Imported dashboard with %d account(s)", len(doc.accounts))

    response = JSONResponse(
        content={
            "accounts": len(doc.accounts),
            "dateRange": doc.date_range.model_dump(by_alias=True) if doc.date_range else None,
        }
    )
    set_session_cookie(response, session_id, settings)
    return response


@router.post("/api/session/logout")
async def logout(store: SessionStoreDep, session_id: SessionIdDep) -> JSONResponse:
    store.clear(session_id)
    response = JSONResponse(content={"status": "ok"})
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response
