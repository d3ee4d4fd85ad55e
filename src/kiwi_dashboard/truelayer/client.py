from __future__ import annotations

import json
import logging
from typing import Any, TypeVar
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ValidationError

from .. import __version__
from ..config import Settings
from ..errors import UpstreamError
from .models import (
    TokenResponse,
    TrueLayerAccount,
    TrueLayerBalance,
    TrueLayerCard,
    TrueLayerTransaction,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _error_message(resp: httpx.Response) -> str:
    raw = resp.text
    body: Any
    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        body = raw

    if isinstance(body, dict):
        for key in ("error_description", "error"):
            value = body.get(key)
            if isinstance(value, str):
                return value

    if isinstance(body, str):
        fallback = body
    elif body is not None:
        fallback = json.dumps(body)
    else:
        fallback = "No response body"

    return f"TrueLayer request failed with status {resp.status_code}: {fallback}"


class TrueLayerClient:
    """
    Async adapter over the TrueLayer auth and Data API.

    One error kind for everything that goes wrong (UpstreamError). No caching and no
    retries: a failed call is final for the caller.
    """

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None):
        self._settings = settings
        self._auth_base_url = settings.auth_base_url
        self._data_base_url = settings.data_base_url

        self._client = http or httpx.AsyncClient(
            headers={"User-Agent": f"kiwi-dashboard/{__version__}"},
            timeout=httpx.Timeout(settings.http_timeout_seconds),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TrueLayerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            detail = str(e) or type(e).__name__
            raise UpstreamError(f"TrueLayer request failed: {detail}") from e

        if not resp.is_success:
            message = _error_message(resp)
            logger.debug("TrueLayer %s %s -> %s", method, resp.request.url.path, resp.status_code)
            raise UpstreamError(message)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                f"TrueLayer returned a non-JSON response with status {resp.status_code}"
            ) from e

    async def _get_results(self, path: str, access_token: str, model: type[M]) -> list[M]:
        data = await self._send(
            "GET",
            f"{self._data_base_url}{path}",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise UpstreamError(f"TrueLayer response for {path} has no results list")

        try:
            return [model.model_validate(x) for x in data["results"]]
        except ValidationError as e:
            raise UpstreamError(f"TrueLayer response for {path} is malformed: {e}") from e

    async def _token(self, form: dict[str, str]) -> TokenResponse:
        data = await self._send(
            "POST",
            f"{self._auth_base_url}/connect/token",
            data=form,
        )
        try:
            return TokenResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(f"TrueLayer token response is malformed: {e}") from e

    def create_auth_url(self, state: str, nonce: str | None = None) -> str:
        client_id, _, redirect_uri = self._settings.require_oauth()

        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(self._settings.scopes),
            "providers": self._settings.providers,
            "enable_mock": self._settings.enable_mock,
            "state": state,
        }
        if nonce:
            params["nonce"] = nonce

        return f"{self._auth_base_url}/?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenResponse:
        client_id, client_secret, redirect_uri = self._settings.require_oauth()
        return await self._token(
            {
                "grant_type": "authorization_code",
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
            }
        )

    async def refresh(self, refresh_token: str) -> TokenResponse:
        client_id, client_secret, _ = self._settings.require_oauth()
        return await self._token(
            {
                "grant_type": "refresh_token",
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
            }
        )

    async def list_accounts(self, access_token: str) -> list[TrueLayerAccount]:
        return await self._get_results("/accounts", access_token, TrueLayerAccount)

    async def list_cards(self, access_token: str) -> list[TrueLayerCard]:
        return await self._get_results("/cards", access_token, TrueLayerCard)

    async def get_balance(self, access_token: str, account_id: str) -> TrueLayerBalance | None:
        results = await self._get_results(
            f"/accounts/{quote(account_id, safe='')}/balance",
            access_token,
            TrueLayerBalance,
        )
        return results[0] if results else None

    async def list_transactions(
        self,
        access_token: str,
        account_id: str,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[TrueLayerTransaction]:
        params: dict[str, str] = {}
        if date_from:
            params["from"] = date_from
        if date_to:
            params["to"] = date_to

        path = f"/accounts/{quote(account_id, safe='')}/transactions"
        if params:
            path = f"{path}?{urlencode(params)}"

        return await self._get_results(path, access_token, TrueLayerTransaction)
