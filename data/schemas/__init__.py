"""
Credential store schemas — Pydantic v2 models for records, filters, options, and results.
"""

from data.schemas.credential import (
    AccountContext,
    ClearResult,
    CredentialFilter,
    CredentialRecord,
    DeleteResult,
    FilterKind,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    SaveOptions,
    SaveResult,
    StoredRecord,
    StoreOptions,
    StoreSelector,
    new_credential_id,
)

__all__ = [
    "AccountContext",
    "ClearResult",
    "CredentialFilter",
    "CredentialRecord",
    "DeleteResult",
    "FilterKind",
    "QueryMetadata",
    "QueryOptions",
    "QueryResult",
    "SaveOptions",
    "SaveResult",
    "StoredRecord",
    "StoreOptions",
    "StoreSelector",
    "new_credential_id",
]
