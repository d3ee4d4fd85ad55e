from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer, field_validator

# Decimal internally, plain JSON number on the wire (exports stay readable by older builds)
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

ACCOUNT_NUMBER_PLACEHOLDER = "****"


class TrueLayerProvider(BaseModel):
    provider_id: str
    display_name: str | None = None
    logo_uri: str | None = None


class AccountNumber(BaseModel):
    iban: str | None = None
    sort_code: str | None = None
    swift_bic: str | None = None
    number: str | None = None

    def label(self, placeholder: str = ACCOUNT_NUMBER_PLACEHOLDER) -> str:
        return self.number or self.swift_bic or self.iban or placeholder


class TrueLayerAccount(BaseModel):
    account_id: str
    account_type: str | None = None
    currency: str
    display_name: str = ""
    update_timestamp: str | None = None
    provider: TrueLayerProvider | None = None
    account_number: AccountNumber = Field(default_factory=AccountNumber)

    def label(self) -> str:
        return f"{self.display_name} ({self.account_number.label()})"


class TrueLayerCard(BaseModel):
    account_id: str
    card_network: str | None = None
    card_type: str | None = None
    currency: str
    display_name: str = ""
    name_on_card: str | None = None
    partial_card_number: str | None = None
    update_timestamp: str | None = None
    provider: TrueLayerProvider | None = None


class RunningBalance(BaseModel):
    amount: Amount
    currency: str


class TrueLayerTransaction(BaseModel):
    transaction_id: str
    timestamp: datetime
    description: str = ""
    amount: Amount
    currency: str | None = None
    transaction_type: str | None = None
    transaction_category: str | None = None
    running_balance: RunningBalance | None = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        return v or ""


class TrueLayerBalance(BaseModel):
    available: Amount | None = None
    current: Amount | None = None
    overdraft: Amount | None = None
    update_timestamp: str | None = None
    currency: str | None = None

    def value(self) -> Decimal:
        if self.current is not None:
            return self.current
        if self.available is not None:
            return self.available
        return Decimal(0)


class TokenResponse(BaseModel):
    token_type: str = "Bearer"
    expires_in: int
    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | None = None
