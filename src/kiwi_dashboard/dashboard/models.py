from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..truelayer.models import (
    AccountNumber,
    Amount,
    TrueLayerAccount,
    TrueLayerBalance,
    TrueLayerProvider,
    TrueLayerTransaction,
)


class CamelModel(BaseModel):
    # wire names are camelCase, python attributes snake_case
    model_config = ConfigDict(populate_by_name=True)


class MonthRange(CamelModel):
    start_month: str = Field(alias="startMonth")
    end_month: str = Field(alias="endMonth")


class AccountEntry(CamelModel):
    account: TrueLayerAccount
    balance: TrueLayerBalance | None = None
    transactions: list[TrueLayerTransaction] = Field(default_factory=list)
    is_income_account: bool = Field(default=False, alias="isIncomeAccount")
    fetch_error: str | None = Field(default=None, alias="fetchError")

    def currency_of(self, tx: TrueLayerTransaction) -> str:
        return tx.currency or self.account.currency


class DashboardExport(CamelModel):
    accounts: list[AccountEntry]
    date_range: MonthRange | None = Field(default=None, alias="dateRange")


class TransactionItem(BaseModel):
    id: str
    account_id: str
    timestamp: datetime
    description: str
    amount: Amount
    currency: str
    account_number: AccountNumber
    provider: TrueLayerProvider | None = None

    def searchable_text(self) -> str:
        parts = [
            self.description,
            self.currency,
            self.provider.display_name if self.provider else None,
            self.account_number.label(placeholder=""),
        ]
        return " ".join(p for p in parts if p).lower()


class DayGroup(BaseModel):
    key: str
    label: str
    items: list[TransactionItem]


class CurrencyTotals(BaseModel):
    income: Amount = Decimal(0)
    expenses: Amount = Decimal(0)


class TransactionView(BaseModel):
    groups: list[DayGroup]
    totals: dict[str, CurrencyTotals]

    @property
    def items(self) -> list[TransactionItem]:
        return [item for group in self.groups for item in group.items]

    def display_totals(self, default_currency: str) -> dict[str, CurrencyTotals]:
        if not self.totals:
            return {default_currency: CurrencyTotals()}
        return self.totals


class CurrencyTotal(BaseModel):
    totals: dict[str, Amount] = Field(default_factory=dict)
    providers: list[TrueLayerProvider | None] = Field(default_factory=list)


class DashboardSummary(BaseModel):
    balance: CurrencyTotal
    income: CurrencyTotal
    expenses: CurrencyTotal
