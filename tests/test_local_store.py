"""
Tests for the DuckDB local credential store.
All tests use in-memory DuckDB (:memory:).
"""

import pytest

from data.schemas.credential import AccountContext, CredentialFilter, CredentialRecord, FilterKind
from data.storage.local_store import LocalCredentialStore


def make_vc(name: str, types: list[str] | None = None) -> dict:
    return {
        "@context": ["https://www.w3.org/2018/credentials/v1"],
        "type": types or ["VerifiableCredential"],
        "credentialSubject": {"name": name},
    }


def test_save_and_query(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Saved records come back from query."""
    ids = local_store.save(context, [CredentialRecord(id="a", data=make_vc("alice"))])
    assert ids == ["a"]
    out = local_store.query(context)
    assert len(out) == 1
    assert out[0].id == "a"
    assert out[0].data["credentialSubject"]["name"] == "alice"


def test_save_assigns_missing_ids(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Records without an id get a generated one."""
    ids = local_store.save(context, [CredentialRecord(data=make_vc("a")), CredentialRecord(data=make_vc("b"))])
    assert len(ids) == 2
    assert len(set(ids)) == 2
    assert [r.id for r in local_store.query(context)] == ids


def test_query_preserves_insertion_order(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Query returns records in the order they were first saved."""
    for key in ["z", "a", "m"]:
        local_store.save(context, [CredentialRecord(id=key, data=make_vc(key))])
    assert list(local_store.load_collection(context)) == ["z", "a", "m"]


def test_resave_replaces_data(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Saving an existing id replaces its data."""
    local_store.save(context, [CredentialRecord(id="a", data=make_vc("old"))])
    local_store.save(context, [CredentialRecord(id="a", data=make_vc("new"))])
    out = local_store.query(context)
    assert len(out) == 1
    assert out[0].data["credentialSubject"]["name"] == "new"


def test_token_records_are_returned_as_saved(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Token strings are stored and returned undecoded."""
    local_store.save(context, [CredentialRecord(id="t", data="aaa.bbb.ccc")])
    assert local_store.query(context)[0].data == "aaa.bbb.ccc"


def test_accounts_are_isolated(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """One account never sees another account's records."""
    other = AccountContext(account="0xdef")
    local_store.save(context, [CredentialRecord(id="a", data=make_vc("mine"))])
    local_store.save(other, [CredentialRecord(id="a", data=make_vc("theirs"))])
    assert local_store.query(context)[0].data["credentialSubject"]["name"] == "mine"
    assert local_store.query(other)[0].data["credentialSubject"]["name"] == "theirs"
    local_store.clear(other)
    assert len(local_store.query(context)) == 1


def test_delete(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Deleting an existing id removes it."""
    local_store.save(context, [CredentialRecord(id="a", data=make_vc("a")), CredentialRecord(id="b", data=make_vc("b"))])
    assert local_store.delete(context, ["a", "missing"]) is True
    assert [r.id for r in local_store.query(context)] == ["b"]


def test_delete_missing_returns_false(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Deleting unknown ids returns False."""
    local_store.save(context, [CredentialRecord(id="a", data=make_vc("a"))])
    assert local_store.delete(context, ["missing"]) is False
    assert len(local_store.query(context)) == 1


def test_clear_without_filter_removes_all(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """clear without a filter wipes the account's records."""
    local_store.save(context, [CredentialRecord(id=k, data=make_vc(k)) for k in "abc"])
    assert local_store.clear(context) is True
    assert local_store.query(context) == []


def test_clear_honors_filter(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """Local clear with a byType filter only removes matching records."""
    local_store.save(
        context,
        [
            CredentialRecord(id="a", data=make_vc("a", ["VerifiableCredential", "Degree"])),
            CredentialRecord(id="b", data=make_vc("b", ["VerifiableCredential", "License"])),
        ],
    )
    assert local_store.clear(context, CredentialFilter(kind=FilterKind.by_type, parameter="Degree")) is True
    assert [r.id for r in local_store.query(context)] == ["b"]


def test_query_by_id_filter(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """byId returns the single matching record."""
    local_store.save(context, [CredentialRecord(id=k, data=make_vc(k)) for k in "abc"])
    out = local_store.query(context, CredentialFilter(kind=FilterKind.by_id, parameter="b"))
    assert [r.id for r in out] == ["b"]


def test_replace_collection(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """replace_collection swaps in the given collection."""
    local_store.save(context, [CredentialRecord(id="old", data=make_vc("old"))])
    local_store.replace_collection(context, {"x": make_vc("x"), "y": make_vc("y")})
    assert list(local_store.load_collection(context)) == ["x", "y"]


def test_failed_save_rolls_back(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """A record that cannot be serialized aborts the whole save."""
    with pytest.raises(TypeError):
        local_store.save(
            context,
            [CredentialRecord(id="ok", data=make_vc("ok")), CredentialRecord(id="bad", data={"x": object()})],
        )
    assert local_store.query(context) == []


def test_get_stats(local_store: LocalCredentialStore, context: AccountContext) -> None:
    """get_stats counts credentials per account."""
    local_store.save(context, [CredentialRecord(id=k, data=make_vc(k)) for k in "ab"])
    local_store.save(AccountContext(account="0xdef"), [CredentialRecord(id="c", data=make_vc("c"))])
    stats = local_store.get_stats()
    assert stats["total_credentials"] == 3
    assert stats["by_account"] == {"0xabc": 2, "0xdef": 1}


def test_file_backed_store_persists(tmp_path, context: AccountContext) -> None:
    """Records survive reopening a file-backed database."""
    db_path = tmp_path / "db" / "credentials.duckdb"
    store = LocalCredentialStore(db_path)
    store.save(context, [CredentialRecord(id="a", data=make_vc("a"))])
    store.close()

    reopened = LocalCredentialStore(db_path)
    try:
        assert [r.id for r in reopened.query(context)] == ["a"]
    finally:
        reopened.close()
