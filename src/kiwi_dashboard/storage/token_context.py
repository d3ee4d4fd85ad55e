from __future__ import annotations

from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SingleTokenContext(_Camel):
    """One token for every connected account. Written by builds before per-account contexts."""

    kind: Literal["single"] = "single"
    access_token: str = Field(alias="accessToken", min_length=1)
    expires_in: int = Field(alias="expiresIn")


class AccountTokenContext(_Camel):
    account_id: str = Field(alias="accountId", min_length=1)
    access_token: str = Field(alias="accessToken", min_length=1)
    expires_in: int | None = Field(default=None, alias="expiresIn")


class AccountTokenContexts(_Camel):
    kind: Literal["per_account"] = "per_account"
    accounts: list[AccountTokenContext] = Field(default_factory=list)

    def token_map(self) -> dict[str, str]:
        return {c.account_id: c.access_token for c in self.accounts}

    def upsert(self, contexts: Iterable[AccountTokenContext]) -> "AccountTokenContexts":
        merged = {c.account_id: c for c in self.accounts}
        for c in contexts:
            merged[c.account_id] = c
        return AccountTokenContexts(accounts=list(merged.values()))


TokenContext = Annotated[Union[SingleTokenContext, AccountTokenContexts], Field(discriminator="kind")]

_TAGGED = TypeAdapter(TokenContext)
_LEGACY_LIST = TypeAdapter(list[AccountTokenContext])


def decode_token_context(raw: Any) -> SingleTokenContext | AccountTokenContexts | None:
    """
    Decode a stored token context.

    Tagged blobs carry "kind". Two untagged legacy shapes are recognised:
    {"accessToken", "expiresIn"} and a bare list of per-account contexts.
    Anything else is treated as no context.
    """
    try:
        if isinstance(raw, dict) and "kind" in raw:
            return _TAGGED.validate_python(raw)
        if isinstance(raw, dict):
            return SingleTokenContext.model_validate(raw)
        if isinstance(raw, list):
            return AccountTokenContexts(accounts=_LEGACY_LIST.validate_python(raw))
    except ValidationError:
        return None
    return None


def migrate_token_context(
    ctx: SingleTokenContext | AccountTokenContexts | None,
    account_ids: Iterable[str],
) -> AccountTokenContexts:
    if ctx is None:
        return AccountTokenContexts()
    if isinstance(ctx, AccountTokenContexts):
        return ctx
    return AccountTokenContexts(
        accounts=[
            AccountTokenContext(account_id=acc_id, access_token=ctx.access_token, expires_in=ctx.expires_in)
            for acc_id in account_ids
        ]
    )
