"""
Filter resolution shared by every credential store.

Each store loads its full (decoded) record set for the account and hands it
here; the same filter therefore selects the same records everywhere.
"""

from typing import Any, Mapping

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_path
from loguru import logger

from data.schemas.credential import CredentialFilter, FilterKind, StoredRecord
from data.storage.errors import InvalidFilterExpressionError


def _matches_type(data: Any, credential_type: str) -> bool:
    """True if the credential's `type` contains credential_type (element of a list, substring of a str)."""
    if not isinstance(data, Mapping):
        return False
    types = data.get("type")
    if isinstance(types, (list, tuple, str)):
        return credential_type in types
    return False


def _to_entries(records: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [{"metadata": {"id": key}, "data": value} for key, value in records.items()]


def _entry_to_record(entry: Any) -> StoredRecord | None:
    if not isinstance(entry, Mapping):
        return None
    metadata = entry.get("metadata")
    if not isinstance(metadata, Mapping) or "id" not in metadata or "data" not in entry:
        return None
    return StoredRecord(id=str(metadata["id"]), data=entry["data"])


def query_by_path(records: Mapping[str, Any], expression: str) -> list[StoredRecord]:
    """
    Evaluate a JSONPath expression over `[{metadata: {id}, data}, ...]`.

    Only matches shaped like an entry are returned; anything else the
    expression selects (bare fields, scalars) is dropped.

    Raises:
        InvalidFilterExpressionError: If the expression cannot be parsed or evaluated.
    """
    try:
        path = parse_path(expression)
    except JSONPathError as e:
        raise InvalidFilterExpressionError(f"Invalid path expression {expression!r}: {e}") from e

    try:
        matches = [m.value for m in path.find(_to_entries(records))]
    except (JSONPathError, TypeError, ValueError, KeyError) as e:
        raise InvalidFilterExpressionError(f"Path expression {expression!r} failed: {e}") from e

    result: list[StoredRecord] = []
    dropped = 0
    for match in matches:
        record = _entry_to_record(match)
        if record is None:
            dropped += 1
            continue
        result.append(record)
    if dropped:
        logger.debug("Path {} selected {} non-record values (dropped)", expression, dropped)
    return result


def resolve_filter(
    records: Mapping[str, Any],
    credential_filter: CredentialFilter | None = None,
) -> list[StoredRecord]:
    """
    Apply a filter to a store's full record set.

    Args:
        records: Mapping of record id -> decoded credential data, in store order.
        credential_filter: Filter to apply; None behaves like kind=none.

    Returns:
        Matching records in store order (or expression order for byPath).
    """
    if credential_filter is None or credential_filter.kind == FilterKind.none:
        return [StoredRecord(id=key, data=value) for key, value in records.items()]

    if credential_filter.kind == FilterKind.by_id:
        key = credential_filter.parameter
        if key in records:
            return [StoredRecord(id=key, data=records[key])]
        return []

    if credential_filter.kind == FilterKind.by_type:
        return [
            StoredRecord(id=key, data=value)
            for key, value in records.items()
            if _matches_type(value, credential_filter.parameter)
        ]

    if credential_filter.kind == FilterKind.by_path:
        return query_by_path(records, credential_filter.parameter)

    raise InvalidFilterExpressionError(f"Unsupported filter kind: {credential_filter.kind}")
