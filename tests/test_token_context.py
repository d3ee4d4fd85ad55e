from kiwi_dashboard.storage.token_context import (
    AccountTokenContext,
    AccountTokenContexts,
    SingleTokenContext,
    decode_token_context,
    migrate_token_context,
)


def test_decode_tagged_contexts():
    single = decode_token_context({"kind": "single", "accessToken": "tok", "expiresIn": 3600})
    assert isinstance(single, SingleTokenContext)
    assert single.access_token == "tok"

    per_account = decode_token_context(
        {"kind": "per_account", "accounts": [{"accountId": "a", "accessToken": "tok-a"}]}
    )
    assert isinstance(per_account, AccountTokenContexts)
    assert per_account.token_map() == {"a": "tok-a"}


def test_decode_legacy_shapes():
    single = decode_token_context({"accessToken": "tok", "expiresIn": 60})
    assert isinstance(single, SingleTokenContext)
    assert single.expires_in == 60

    listed = decode_token_context(
        [
            {"accountId": "a", "accessToken": "tok-a", "expiresIn": 60},
            {"accountId": "b", "accessToken": "tok-b"},
        ]
    )
    assert isinstance(listed, AccountTokenContexts)
    assert listed.token_map() == {"a": "tok-a", "b": "tok-b"}


def test_decode_garbage_is_no_context():
    for raw in (None, "tok", 42, {}, {"accessToken": ""}, {"kind": "other"}, [{"accountId": "a"}]):
        assert decode_token_context(raw) is None, raw


def test_migrate_single_to_per_account():
    ctx = SingleTokenContext(access_token="tok", expires_in=3600)
    migrated = migrate_token_context(ctx, ["a", "b"])

    assert migrated.token_map() == {"a": "tok", "b": "tok"}
    assert all(c.expires_in == 3600 for c in migrated.accounts)

    assert migrate_token_context(None, ["a"]).accounts == []
    assert migrate_token_context(migrated, ["zzz"]) is migrated


def test_upsert_replaces_by_account():
    ctx = AccountTokenContexts(
        accounts=[
            AccountTokenContext(account_id="a", access_token="old-a"),
            AccountTokenContext(account_id="b", access_token="old-b"),
        ]
    )
    updated = ctx.upsert(
        [
            AccountTokenContext(account_id="b", access_token="new-b"),
            AccountTokenContext(account_id="c", access_token="new-c"),
        ]
    )

    assert updated.token_map() == {"a": "old-a", "b": "new-b", "c": "new-c"}
    assert ctx.token_map() == {"a": "old-a", "b": "old-b"}
