from .session_store import SessionState, SessionStore, merge_accounts
from .token_context import (
    AccountTokenContext,
    AccountTokenContexts,
    SingleTokenContext,
    decode_token_context,
    migrate_token_context,
)

__all__ = [
    "SessionStore",
    "SessionState",
    "merge_accounts",
    "AccountTokenContext",
    "AccountTokenContexts",
    "SingleTokenContext",
    "decode_token_context",
    "migrate_token_context",
]
