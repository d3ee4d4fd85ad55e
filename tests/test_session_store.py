import json
import time

from cryptography.fernet import Fernet
import pytest

from kiwi_dashboard.dashboard.models import AccountEntry, MonthRange
from kiwi_dashboard.storage import AccountTokenContext, AccountTokenContexts, SessionState, SessionStore
from kiwi_dashboard.storage.session_store import merge_accounts
from kiwi_dashboard.storage.token_context import SingleTokenContext
from kiwi_dashboard.truelayer.models import TrueLayerAccount

SID = "session_id_0123456789"


@pytest.fixture(autouse=True)
def master_key(monkeypatch):
    key = Fernet.generate_key().decode()
    monkeypatch.setenv("MASTER_KEY", key)
    return key


def _acc(account_id: str, name: str = "") -> TrueLayerAccount:
    return TrueLayerAccount(account_id=account_id, currency="GBP", display_name=name)


def _state() -> SessionState:
    return SessionState(
        connected_accounts=[_acc("a", "Current")],
        token_context=AccountTokenContexts(
            accounts=[AccountTokenContext(account_id="a", access_token="secret-token", expires_in=3600)]
        ),
        dashboard=[AccountEntry(account=_acc("a", "Current"))],
        date_range=MonthRange(start_month="2024-01", end_month="2024-03"),
    )


def test_save_and_load(tmp_path):
    store = SessionStore(tmp_path)
    path = store.save(SID, _state())

    assert "secret-token" not in path.read_text(encoding="utf-8")

    loaded = store.load(SID)
    assert loaded == _state()


def test_missing_and_invalid_ids(tmp_path):
    store = SessionStore(tmp_path)

    assert store.load(None) is None
    assert store.load(SID) is None
    assert store.load("../../etc/passwd") is None

    with pytest.raises(ValueError):
        store.save("short", SessionState())


def test_expired_session_is_removed(tmp_path):
    store = SessionStore(tmp_path, ttl_seconds=-1)
    path = store.save(SID, SessionState(connected_accounts=[_acc("a")]))

    assert store.load(SID) is None
    assert not path.exists()


def test_corrupt_session_is_removed(tmp_path):
    store = SessionStore(tmp_path)
    path = tmp_path / f"{SID}.json"
    path.write_text("{broken", encoding="utf-8")

    assert store.load(SID) is None
    assert not path.exists()


def test_plain_legacy_token_context_is_accepted(tmp_path):
    store = SessionStore(tmp_path)
    (tmp_path / f"{SID}.json").write_text(
        json.dumps(
            {
                "expires_at": time.time() + 60,
                "state": {"connected_accounts": [{"account_id": "a", "currency": "GBP"}]},
                "token_context": {"accessToken": "tok", "expiresIn": 3600},
            }
        ),
        encoding="utf-8",
    )

    loaded = store.load(SID)
    assert isinstance(loaded.token_context, SingleTokenContext)
    assert loaded.token_context.access_token == "tok"


def test_token_context_under_another_key_is_dropped(tmp_path, monkeypatch):
    store = SessionStore(tmp_path)
    store.save(SID, _state())

    monkeypatch.setenv("MASTER_KEY", Fernet.generate_key().decode())
    loaded = store.load(SID)

    assert loaded is not None
    assert loaded.token_context is None
    assert [a.account_id for a in loaded.connected_accounts] == ["a"]


def test_clear(tmp_path):
    store = SessionStore(tmp_path)
    path = store.save(SID, SessionState())

    store.clear(SID)
    store.clear(None)
    assert not path.exists()


def test_merge_accounts_keeps_first_position():
    merged = merge_accounts([_acc("a", "old"), _acc("b")], [_acc("c"), _acc("a", "new")])

    assert [a.account_id for a in merged] == ["a", "b", "c"]
    assert merged[0].display_name == "new"
