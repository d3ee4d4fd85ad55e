from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Mapping, Protocol

from ..core.time_ranges import DateRange, parse_month_range
from ..errors import RequestValidationError
from ..truelayer.models import TrueLayerAccount, TrueLayerBalance, TrueLayerTransaction
from .models import AccountEntry

logger = logging.getLogger(__name__)

MISSING_TOKEN_CONTEXT = "Missing access token context."
INVALID_DATE_RANGE = "Invalid date range. Please provide a valid start and end month."
MISSING_ACCOUNT_TOKEN = "Missing account token context"


class AccountDataSource(Protocol):
    async def get_balance(self, access_token: str, account_id: str) -> TrueLayerBalance | None: ...

    async def list_transactions(
        self,
        access_token: str,
        account_id: str,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[TrueLayerTransaction]: ...


def resolve_token_map(contexts: Iterable[tuple[str | None, str | None]]) -> dict[str, str]:
    """(account_id, access_token) pairs -> map, skipping blanks. Later pairs win."""
    out: dict[str, str] = {}
    for account_id, token in contexts:
        account_id = (account_id or "").strip()
        token = (token or "").strip()
        if account_id and token:
            out[account_id] = token
    return out


async def _fetch_entry(
    source: AccountDataSource,
    account: TrueLayerAccount,
    token: str | None,
    date_range: DateRange,
    is_income: bool,
) -> AccountEntry:
    if not token:
        return AccountEntry(
            account=account,
            is_income_account=is_income,
            fetch_error=MISSING_ACCOUNT_TOKEN,
        )

    date_from, date_to = date_range.to_query()
    balance_res, tx_res = await asyncio.gather(
        source.get_balance(token, account.account_id),
        source.list_transactions(token, account.account_id, date_from, date_to),
        return_exceptions=True,
    )

    failed: list[str] = []

    balance: TrueLayerBalance | None = None
    if isinstance(balance_res, BaseException):
        logger.warning("Balance fetch failed for account=%s: %s", account.account_id, balance_res)
        failed.append("balance")
    else:
        balance = balance_res

    transactions: list[TrueLayerTransaction] = []
    if isinstance(tx_res, BaseException):
        logger.warning("Transactions fetch failed for account=%s: %s", account.account_id, tx_res)
        failed.append("transactions")
    else:
        transactions = list(tx_res)

    return AccountEntry(
        account=account,
        balance=balance,
        transactions=transactions,
        is_income_account=is_income,
        fetch_error=f"Could not fetch {' & '.join(failed)}" if failed else None,
    )


async def build_dashboard(
    source: AccountDataSource,
    accounts: list[TrueLayerAccount],
    *,
    start_month: str | None,
    end_month: str | None,
    access_token: str | None = None,
    token_by_account: Mapping[str, str] | None = None,
    income_account_ids: Iterable[str] = (),
    now: datetime | None = None,
) -> list[AccountEntry]:
    """
    Fetch balance and transactions for every account concurrently.

    A failing account or field degrades to an empty value plus fetch_error on that
    entry; it never aborts the batch. Entries keep the order of `accounts`.
    """
    access_token = (access_token or "").strip() or None
    token_by_account = dict(token_by_account or {})

    if not access_token and not token_by_account:
        raise RequestValidationError(MISSING_TOKEN_CONTEXT)

    date_range = parse_month_range(start_month, end_month, now=now)
    if date_range is None:
        raise RequestValidationError(INVALID_DATE_RANGE)

    income_ids = set(income_account_ids)

    logger.info(
        "Building dashboard: accounts=%d from=%s to=%s",
        len(accounts),
        *date_range.to_query(),
    )

    tasks = [
        asyncio.ensure_future(
            _fetch_entry(
                source,
                account,
                token_by_account.get(account.account_id, access_token),
                date_range,
                account.account_id in income_ids,
            )
        )
        for account in accounts
    ]
    try:
        entries = await asyncio.gather(*tasks)
    except BaseException:
        # provider failures are absorbed per entry; anything escaping aborts the batch
        for task in tasks:
            task.cancel()
        raise
    return list(entries)
