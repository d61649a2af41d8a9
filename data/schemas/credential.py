"""
Pydantic v2 models for credential records, filters, store options, and
per-store operation results.
"""

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, field_validator, model_serializer

StoreSelector = str | list[str] | None


def new_credential_id() -> str:
    """Fresh random identifier for a record saved without one."""
    return str(uuid4())


class FilterKind(str, Enum):
    """How a filter parameter is interpreted by a store."""

    none = "none"
    by_id = "byId"
    by_type = "byType"
    by_path = "byPath"


class CredentialFilter(BaseModel):
    """Tagged filter expression applied inside each store."""

    kind: FilterKind = Field(FilterKind.none)
    parameter: str = Field("", description="Id, credential type, or path expression depending on kind")


class CredentialRecord(BaseModel):
    """
    Opaque credential payload plus its identifier.
    `data` is either a structured credential (dict) or a compact signed token (str).
    """

    id: str | None = Field(None, description="Stable identifier; assigned by DataManager when missing")
    data: Any = Field(...)


class AccountContext(BaseModel):
    """Request-scoped account and remote access token threaded through every call."""

    account: str = Field(..., min_length=1)
    access_token: str | None = Field(None, description="Bearer token for the remote document store")

    model_config = {"str_strip_whitespace": True}


class StoreOptions(BaseModel):
    """Store selection shared by every DataManager operation."""

    store: StoreSelector = Field(None, description="One store name, an ordered list, or None for all")

    @field_validator("store", mode="before")
    @classmethod
    def _reject_empty_name(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            raise ValueError("store name must not be empty")
        return value

    def store_names(self) -> list[str] | None:
        """Selector normalized to a list, or None when omitted."""
        if self.store is None:
            return None
        if isinstance(self.store, str):
            return [self.store]
        return list(self.store)


class SaveOptions(StoreOptions):
    """Options for DataManager.save."""


class QueryOptions(StoreOptions):
    """Options for DataManager.query."""

    return_store: bool = Field(True, alias="returnStore")

    model_config = {"populate_by_name": True}


class StoredRecord(BaseModel):
    """A record as returned by one store: its id and decoded data."""

    id: str
    data: Any


class QueryMetadata(BaseModel):
    """Result attribution; `store` is left out of dumps when the caller did not ask for it."""

    id: str
    store: str | None = None

    @model_serializer(mode="wrap")
    def _omit_unrequested_store(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        dumped = handler(self)
        if self.store is None:
            dumped.pop("store", None)
        return dumped


class SaveResult(BaseModel):
    """One entry per (record, store) pair actually written."""

    id: str
    store: str


class QueryResult(BaseModel):
    data: Any
    metadata: QueryMetadata


class DeleteResult(BaseModel):
    """
    One entry per store the delete was dispatched to.
    `id` echoes the caller's argument: a single id string or the list of ids.
    """

    id: str | list[str] = Field(default_factory=list)
    removed: bool = Field(False)
    store: str


class ClearResult(BaseModel):
    removed: bool = Field(False)
    store: str
