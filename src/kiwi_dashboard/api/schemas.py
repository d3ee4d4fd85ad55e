from __future__ import annotations

from pydantic import Field

from ..dashboard.models import CamelModel
from ..truelayer.models import TrueLayerAccount


class AccountContextIn(CamelModel):
    account_id: str | None = Field(default=None, alias="accountId")
    access_token: str | None = Field(default=None, alias="accessToken")
    expires_in: int | None = Field(default=None, alias="expiresIn")


class DashboardRequest(CamelModel):
    access_token: str | None = Field(default=None, alias="accessToken")
    account_contexts: list[AccountContextIn] = Field(default_factory=list, alias="accountContexts")
    accounts: list[TrueLayerAccount] = Field(default_factory=list)
    income_account_ids: list[str] = Field(default_factory=list, alias="incomeAccountIds")
    start_month: str | None = Field(default=None, alias="startMonth")
    end_month: str | None = Field(default=None, alias="endMonth")
