"""Tests for filter resolution shared by all credential stores."""

import pytest

from data.schemas.credential import CredentialFilter, FilterKind
from data.storage.errors import InvalidFilterExpressionError
from data.storage.filters import query_by_path, resolve_filter

RECORDS = {
    "a": {"type": ["A", "B"], "credentialSubject": {"name": "alice"}},
    "b": {"type": ["B"], "credentialSubject": {"name": "bob"}},
    "c": {"type": ["C"], "credentialSubject": {"name": "carol"}},
}


def test_no_filter_returns_all_in_order() -> None:
    """No filter returns every record in collection order."""
    out = resolve_filter(RECORDS)
    assert [r.id for r in out] == ["a", "b", "c"]
    assert out[0].data == RECORDS["a"]


def test_none_kind_returns_all() -> None:
    """The none kind behaves like no filter."""
    out = resolve_filter(RECORDS, CredentialFilter(kind=FilterKind.none))
    assert len(out) == 3


def test_by_id_returns_single_record() -> None:
    """byId returns the one record with that key."""
    out = resolve_filter(RECORDS, CredentialFilter(kind=FilterKind.by_id, parameter="b"))
    assert len(out) == 1
    assert out[0].id == "b"
    assert out[0].data["credentialSubject"]["name"] == "bob"


def test_by_id_missing_returns_empty() -> None:
    """byId with an unknown key returns an empty list."""
    assert resolve_filter(RECORDS, CredentialFilter(kind=FilterKind.by_id, parameter="zzz")) == []


def test_by_type_matches_array_elements() -> None:
    """type ['A','B'], ['B'], ['C'] with parameter 'B' returns exactly the first two."""
    out = resolve_filter(RECORDS, CredentialFilter(kind=FilterKind.by_type, parameter="B"))
    assert [r.id for r in out] == ["a", "b"]


def test_by_type_skips_records_without_type() -> None:
    """byType ignores records that have no type field."""
    records = {"x": {"credentialSubject": {}}, "y": "not-a-dict", "z": {"type": ["B"]}}
    out = resolve_filter(records, CredentialFilter(kind=FilterKind.by_type, parameter="B"))
    assert [r.id for r in out] == ["z"]


def test_by_type_string_type_is_substring_match() -> None:
    """A string type field matches by substring."""
    records = {"x": {"type": "VerifiableCredential"}}
    out = resolve_filter(records, CredentialFilter(kind=FilterKind.by_type, parameter="Credential"))
    assert [r.id for r in out] == ["x"]


def test_by_path_index() -> None:
    """An indexed path selects that entry."""
    out = resolve_filter(RECORDS, CredentialFilter(kind=FilterKind.by_path, parameter="$[1]"))
    assert [r.id for r in out] == ["b"]


def test_by_path_filter_expression() -> None:
    """A filter expression selects matching entries."""
    out = query_by_path(RECORDS, '$[?(metadata.id == "c")]')
    assert len(out) == 1
    assert out[0].id == "c"
    assert out[0].data["type"] == ["C"]


def test_by_path_drops_non_record_matches() -> None:
    """Expressions selecting bare fields yield no records."""
    assert query_by_path(RECORDS, "$[*].data.type") == []


def test_by_path_invalid_expression_raises() -> None:
    """A malformed path raises InvalidFilterExpressionError."""
    with pytest.raises(InvalidFilterExpressionError):
        resolve_filter(RECORDS, CredentialFilter(kind=FilterKind.by_path, parameter="$[?("))


def test_filter_kind_accepts_wire_names() -> None:
    """FilterKind parses the byId / byType / byPath names."""
    f = CredentialFilter.model_validate({"kind": "byType", "parameter": "B"})
    assert f.kind == FilterKind.by_type
