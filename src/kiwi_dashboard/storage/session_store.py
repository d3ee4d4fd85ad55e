from __future__ import annotations

import json
import logging
import re
import secrets
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..dashboard.models import AccountEntry, MonthRange
from ..security.crypto import decrypt_text, encrypt_text, looks_encrypted
from ..truelayer.models import TrueLayerAccount
from .token_context import AccountTokenContexts, SingleTokenContext, decode_token_context

logger = logging.getLogger(__name__)

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


class SessionState(BaseModel):
    connected_accounts: list[TrueLayerAccount] = Field(default_factory=list)
    token_context: SingleTokenContext | AccountTokenContexts | None = None
    dashboard: list[AccountEntry] | None = None
    date_range: MonthRange | None = None


def merge_accounts(existing: list[TrueLayerAccount], incoming: list[TrueLayerAccount]) -> list[TrueLayerAccount]:
    """Union by account_id; incoming replaces existing, first-seen position is kept."""
    merged: dict[str, TrueLayerAccount] = {}
    for acc in existing:
        merged[acc.account_id] = acc
    for acc in incoming:
        merged[acc.account_id] = acc
    return list(merged.values())


def is_valid_session_id(session_id: str | None) -> bool:
    return bool(session_id) and _SESSION_ID_RE.match(session_id) is not None


class SessionStore:
    """
    Per-session state, one JSON file per session:

      .cache/sessions/<session_id>.json
      { "expires_at": float, "state": {...}, "token_context": "<fernet>" | null }

    The token context is encrypted with MASTER_KEY; everything else is plain JSON.
    Missing, expired and unreadable sessions all load as None.
    """

    def __init__(self, root_dir: Path | None = None, ttl_seconds: int = 86400):
        self.root_dir = root_dir or (Path(".cache") / "sessions")
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(24)

    def _path(self, session_id: str) -> Path:
        if not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.root_dir / f"{session_id}.json"

    def _decode_tokens(self, stored: Any) -> SingleTokenContext | AccountTokenContexts | None:
        if stored is None:
            return None
        if isinstance(stored, str) and looks_encrypted(stored):
            plain = decrypt_text(stored)
            if plain is None:
                logger.warning("Session token context could not be decrypted, dropping it")
                return None
            stored = json.loads(plain)
        # plain blobs from older writes are accepted and encrypted on the next save
        return decode_token_context(stored)

    def load(self, session_id: str | None) -> SessionState | None:
        if not is_valid_session_id(session_id):
            return None

        path = self._path(session_id)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            expires_at = data.get("expires_at")
            if expires_at is not None and time.time() >= float(expires_at):
                path.unlink(missing_ok=True)
                return None

            state = SessionState.model_validate(data.get("state", {}))
            state.token_context = self._decode_tokens(data.get("token_context"))
            return state
        except (ValueError, TypeError, AttributeError, ValidationError) as e:
            logger.warning("Dropping unreadable session %s: %s", session_id, e)
            path.unlink(missing_ok=True)
            return None

    def save(self, session_id: str, state: SessionState) -> Path:
        token_enc = None
        if state.token_context is not None:
            token_enc = encrypt_text(state.token_context.model_dump_json(by_alias=True))

        payload: dict[str, Any] = {
            "expires_at": time.time() + self.ttl_seconds,
            "state": state.model_dump(mode="json", by_alias=True, exclude={"token_context"}),
            "token_context": token_enc,
        }

        path = self._path(session_id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)
        return path

    def clear(self, session_id: str | None) -> None:
        if not is_valid_session_id(session_id):
            return
        self._path(session_id).unlink(missing_ok=True)
