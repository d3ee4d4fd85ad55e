from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone, tzinfo

from ..core.time_ranges import date_key, day_label, month_key
from .models import AccountEntry, CurrencyTotals, DayGroup, TransactionItem, TransactionView

ALL_ACCOUNTS = "*"


def account_options(entries: list[AccountEntry]) -> list[dict[str, str]]:
    return [{"value": e.account.account_id, "label": e.account.label()} for e in entries]


def flatten_transactions(entries: list[AccountEntry], account_selector: str = ALL_ACCOUNTS) -> list[TransactionItem]:
    items: list[TransactionItem] = []
    for e in entries:
        if account_selector != ALL_ACCOUNTS and e.account.account_id != account_selector:
            continue
        for tx in e.transactions:
            items.append(
                TransactionItem(
                    id=f"{e.account.account_id}-{tx.transaction_id}",
                    account_id=e.account.account_id,
                    timestamp=tx.timestamp,
                    description=tx.description,
                    amount=tx.amount,
                    currency=e.currency_of(tx),
                    account_number=e.account.account_number,
                    provider=e.account.provider,
                )
            )
    return items


def parse_search_terms(search: str | None) -> list[str]:
    if not search:
        return []
    return [t.strip().lower() for t in search.split(",") if t.strip()]


def filter_by_search(items: list[TransactionItem], terms: list[str]) -> list[TransactionItem]:
    if not terms:
        return items
    out = []
    for item in items:
        text = item.searchable_text()
        if any(term in text for term in terms):
            out.append(item)
    return out


def format_group_label(key: str, today: date) -> str:
    day = date.fromisoformat(key)
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day_label(day)


def group_by_day(items: list[TransactionItem], tz: tzinfo, now: datetime | None = None) -> list[DayGroup]:
    """Group in first-seen order; the caller's sort order decides group order."""
    today = (now or datetime.now(tz=timezone.utc)).astimezone(tz).date()

    groups: dict[str, list[TransactionItem]] = {}
    for item in items:
        groups.setdefault(date_key(item.timestamp, tz), []).append(item)

    return [
        DayGroup(key=key, label=format_group_label(key, today), items=day_items)
        for key, day_items in groups.items()
    ]


def totals_by_currency(items: list[TransactionItem]) -> dict[str, CurrencyTotals]:
    totals: dict[str, CurrencyTotals] = defaultdict(CurrencyTotals)
    for item in items:
        current = totals[item.currency]
        if item.amount > 0:
            current.income += item.amount
        elif item.amount < 0:
            current.expenses += abs(item.amount)
    return dict(totals)


def build_transaction_view(
    entries: list[AccountEntry],
    from_month: str,
    to_month: str,
    *,
    tz: tzinfo,
    search: str | None = None,
    account_selector: str = ALL_ACCOUNTS,
    now: datetime | None = None,
) -> TransactionView:
    """
    The transaction feed: account filter, inclusive month window (local months),
    newest first, comma-separated OR search, then grouped by local day.

    Totals are computed over the same filtered set the groups show.
    """
    items = flatten_transactions(entries, account_selector)
    items = [i for i in items if from_month <= month_key(i.timestamp, tz) <= to_month]
    # reverse=True keeps equal timestamps in flatten order
    items.sort(key=lambda i: i.timestamp, reverse=True)
    items = filter_by_search(items, parse_search_terms(search))

    return TransactionView(
        groups=group_by_day(items, tz, now=now),
        totals=totals_by_currency(items),
    )
