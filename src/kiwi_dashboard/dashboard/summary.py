from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from .models import AccountEntry, CurrencyTotal, DashboardSummary


def _positive(totals: dict[str, Decimal]) -> dict[str, Decimal]:
    return {cur: amount for cur, amount in totals.items() if amount > 0}


def _balance_total(entries: list[AccountEntry]) -> CurrencyTotal:
    totals: dict[str, Decimal] = defaultdict(Decimal)
    contributing = [e for e in entries if e.balance is not None and e.balance.value() > 0]

    for e in contributing:
        currency = e.balance.currency or e.account.currency
        totals[currency] += e.balance.value()

    return CurrencyTotal(
        totals=_positive(totals),
        providers=[e.account.provider for e in contributing],
    )


def _income_total(entries: list[AccountEntry]) -> CurrencyTotal:
    totals: dict[str, Decimal] = defaultdict(Decimal)
    contributing = [
        e for e in entries if e.is_income_account and any(tx.amount > 0 for tx in e.transactions)
    ]

    for e in contributing:
        for tx in e.transactions:
            if tx.amount > 0:
                totals[e.currency_of(tx)] += tx.amount

    return CurrencyTotal(
        totals=_positive(totals),
        providers=[e.account.provider for e in contributing],
    )


def _expense_total(entries: list[AccountEntry]) -> CurrencyTotal:
    totals: dict[str, Decimal] = defaultdict(Decimal)
    contributing = [e for e in entries if any(tx.amount < 0 for tx in e.transactions)]

    for e in contributing:
        for tx in e.transactions:
            if tx.amount < 0:
                totals[e.currency_of(tx)] += abs(tx.amount)

    return CurrencyTotal(
        totals=_positive(totals),
        providers=[e.account.provider for e in contributing],
    )


def summarize_dashboard(entries: list[AccountEntry]) -> DashboardSummary:
    """
    Headline totals across all accounts, per currency.

    Income only counts accounts the user tagged as income accounts. Currencies whose
    aggregate is zero or negative are left out.
    """
    return DashboardSummary(
        balance=_balance_total(entries),
        income=_income_total(entries),
        expenses=_expense_total(entries),
    )
