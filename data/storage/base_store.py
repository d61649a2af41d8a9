"""
Abstract credential store: the capability every storage backend implements.
"""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from data.schemas.credential import AccountContext, CredentialFilter, CredentialRecord, StoredRecord
from data.storage.filters import resolve_filter


class BaseCredentialStore(ABC):
    """
    Abstract base class for credential storage backends.

    Subclasses persist one account's records as a mapping of id -> data and
    implement save/delete/clear against their medium. Querying is shared:
    the full collection is loaded, decoded, and passed through the filter
    resolver, so every backend interprets filters identically.
    """

    def configure(self, context: AccountContext) -> bool:
        """Prepare the store for an account. Stores without remote credentials need nothing."""
        return True

    @abstractmethod
    def load_collection(self, context: AccountContext) -> dict[str, Any]:
        """
        Return the account's full collection as stored (id -> data), in store order.
        Values are returned undecoded.
        """
        ...

    @abstractmethod
    def replace_collection(self, context: AccountContext, collection: dict[str, Any]) -> None:
        """Overwrite the account's whole collection."""
        ...

    @abstractmethod
    def save(self, context: AccountContext, records: list[CredentialRecord]) -> list[str]:
        """
        Persist records and return the ids used, in input order.
        Records without an id get a fresh one.
        """
        ...

    @abstractmethod
    def delete(self, context: AccountContext, ids: list[str]) -> bool:
        """Remove the given ids; True iff at least one of them existed and was removed."""
        ...

    @abstractmethod
    def clear(self, context: AccountContext, credential_filter: CredentialFilter | None = None) -> bool:
        """Remove records in bulk. Whether the filter is honored is backend-specific."""
        ...

    def decode_record(self, value: Any) -> Any:
        """Hook for stores that keep records in an encoded form."""
        return value

    def query(
        self,
        context: AccountContext,
        credential_filter: CredentialFilter | None = None,
    ) -> list[StoredRecord]:
        """Return the account's records matching the filter, decoded."""
        collection = self.load_collection(context)
        decoded = {key: self.decode_record(value) for key, value in collection.items()}
        records = resolve_filter(decoded, credential_filter)
        logger.debug(
            "{} matched {}/{} records for account {}",
            type(self).__name__,
            len(records),
            len(decoded),
            context.account,
        )
        return records

    def close(self) -> None:
        """Release any resources held by the store."""
