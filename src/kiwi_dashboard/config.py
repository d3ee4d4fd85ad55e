from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

_BASE_URLS = {
    "live": ("https://auth.truelayer.com", "https://api.truelayer.com/data/v1"),
    "sandbox": ("https://auth.truelayer-sandbox.com", "https://api.truelayer-sandbox.com/data/v1"),
}

_DEFAULT_PROVIDERS = {
    "live": "uk-ob-all uk-oauth-all",
    "sandbox": "uk-cs-mock",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    truelayer_env: Literal["sandbox", "live"] = Field(default="sandbox", alias="TRUELAYER_ENV")
    truelayer_client_id: Optional[str] = Field(default=None, alias="TRUELAYER_CLIENT_ID")
    truelayer_client_secret: Optional[str] = Field(default=None, alias="TRUELAYER_CLIENT_SECRET")
    truelayer_redirect_uri: Optional[str] = Field(default=None, alias="TRUELAYER_REDIRECT_URI")
    truelayer_scopes: str = Field(default="accounts,balance,transactions", alias="TRUELAYER_SCOPES")
    truelayer_auth_base_url: Optional[str] = Field(default=None, alias="TRUELAYER_AUTH_BASE_URL")
    truelayer_data_base_url: Optional[str] = Field(default=None, alias="TRUELAYER_DATA_BASE_URL")
    truelayer_providers: Optional[str] = Field(default=None, alias="TRUELAYER_PROVIDERS")
    truelayer_enable_mock: Optional[str] = Field(default=None, alias="TRUELAYER_ENABLE_MOCK")

    master_key: Optional[str] = Field(default=None, alias="MASTER_KEY")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    cache_dir: Path = Field(default=Path(".cache"), alias="CACHE_DIR")

    display_tz: str = Field(default="Europe/London", alias="DISPLAY_TZ")
    default_currency: str = Field(default="GBP", alias="DEFAULT_CURRENCY")

    http_timeout_seconds: float = Field(default=20.0, alias="HTTP_TIMEOUT_SECONDS")
    session_ttl_seconds: int = Field(default=86400, alias="SESSION_TTL_SECONDS")
    cookie_secure: bool = Field(default=False, alias="COOKIE_SECURE")

    @property
    def scopes(self) -> list[str]:
        return [s.strip() for s in self.truelayer_scopes.split(",") if s.strip()]

    @property
    def auth_base_url(self) -> str:
        return (self.truelayer_auth_base_url or _BASE_URLS[self.truelayer_env][0]).rstrip("/")

    @property
    def data_base_url(self) -> str:
        return (self.truelayer_data_base_url or _BASE_URLS[self.truelayer_env][1]).rstrip("/")

    @property
    def providers(self) -> str:
        return self.truelayer_providers or _DEFAULT_PROVIDERS[self.truelayer_env]

    @property
    def enable_mock(self) -> str:
        if self.truelayer_enable_mock:
            return self.truelayer_enable_mock
        return "true" if self.truelayer_env == "sandbox" else "false"

    def require_oauth(self) -> tuple[str, str, str]:
        """
        Return (client_id, client_secret, redirect_uri) or fail naming the missing variable.
        Called lazily by the OAuth operations, so a server without credentials still serves
        imported dashboards.
        """
        required = {
            "TRUELAYER_CLIENT_ID": self.truelayer_client_id,
            "TRUELAYER_CLIENT_SECRET": self.truelayer_client_secret,
            "TRUELAYER_REDIRECT_URI": self.truelayer_redirect_uri,
        }
        for name, value in required.items():
            if not value or not value.strip():
                raise ConfigurationError(f"Missing required environment variable: {name}")
        return (
            self.truelayer_client_id.strip(),
            self.truelayer_client_secret.strip(),
            self.truelayer_redirect_uri.strip(),
        )


@lru_cache
def load_settings() -> Settings:
    settings = Settings()
    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    return settings
