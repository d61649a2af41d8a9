"""Data manager coordinating credential operations across registered stores.

Every call resolves its target stores up front, then dispatches to them one
at a time in selection order. A store that raises is logged and left out of
the aggregate; only an unknown store name fails the whole call.
"""

from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, TypeVar

from loguru import logger

from data.schemas.credential import (
    AccountContext,
    ClearResult,
    CredentialFilter,
    CredentialRecord,
    DeleteResult,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    SaveOptions,
    SaveResult,
    StoreOptions,
    new_credential_id,
)
from data.storage.base_store import BaseCredentialStore
from data.storage.errors import BackendOperationError, RemoteNotConfiguredError, StoreNotFoundError

T = TypeVar("T")


class DataManager:
    """
    Fans save/query/delete/clear out to a fixed registry of named stores.

    Results carry the name of the store that produced them. Failures of
    individual stores during the last call are kept in `last_failures`.
    """

    def __init__(self, stores: Mapping[str, BaseCredentialStore]):
        """
        Initialize the data manager.

        Args:
            stores: Store name -> store instance. Fixed for the manager's lifetime.
        """
        if not stores:
            raise ValueError("DataManager needs at least one store")
        self._stores: Mapping[str, BaseCredentialStore] = MappingProxyType(dict(stores))
        self.last_failures: list[BackendOperationError] = []
        logger.info("DataManager initialized with stores: {}", ", ".join(self._stores))

    @property
    def store_names(self) -> list[str]:
        return list(self._stores)

    def get_store(self, name: str) -> BaseCredentialStore:
        store = self._stores.get(name)
        if store is None:
            raise StoreNotFoundError(name)
        return store

    def _select(self, options: StoreOptions | None) -> list[tuple[str, BaseCredentialStore]]:
        """Resolve every selected store before any of them is touched."""
        names = options.store_names() if options is not None else None
        if names is None:
            names = self.store_names
        selected = []
        for name in names:
            store = self._stores.get(name)
            if store is None:
                logger.error("Store plugin {} not found (registered: {})", name, self.store_names)
                raise StoreNotFoundError(name)
            selected.append((name, store))
        return selected

    def _dispatch(
        self,
        operation: str,
        selected: list[tuple[str, BaseCredentialStore]],
        call: Callable[[BaseCredentialStore], T],
    ) -> list[tuple[str, T]]:
        """Run call against each store sequentially, isolating failures."""
        self.last_failures = []
        outcomes: list[tuple[str, T]] = []
        for name, store in selected:
            try:
                outcomes.append((name, call(store)))
            except RemoteNotConfiguredError as e:
                # Fatal only when the unconfigured store is the sole target.
                if len(selected) == 1:
                    raise
                self._record_failure(name, operation, e)
            except Exception as e:
                self._record_failure(name, operation, e)
        return outcomes

    def _record_failure(self, name: str, operation: str, error: BaseException) -> None:
        failure = BackendOperationError(name, operation, error)
        self.last_failures.append(failure)
        logger.warning("{} failed on store {}: {}", operation, name, error)

    def configure(self, context: AccountContext, options: StoreOptions | None = None) -> dict[str, bool]:
        """
        Hand the context's access token to each selected store.

        Returns:
            Store name -> whether the store accepted the configuration.
        """
        selected = self._select(options)
        outcomes = dict(self._dispatch("configure", selected, lambda store: store.configure(context)))
        return {name: outcomes.get(name, False) for name, _ in selected}

    def save(
        self,
        context: AccountContext,
        records: Iterable[CredentialRecord | dict[str, Any]],
        options: SaveOptions | None = None,
    ) -> list[SaveResult]:
        """
        Save records to every selected store.

        Records without an id get one fresh id here, shared by all stores.

        Returns:
            One SaveResult per (record, store) pair written, in selection order.
        """
        selected = self._select(options)
        prepared: list[CredentialRecord] = []
        for record in records:
            if not isinstance(record, CredentialRecord):
                record = CredentialRecord.model_validate(record)
            if not record.id:
                record = record.model_copy(update={"id": new_credential_id()})
            prepared.append(record)

        results: list[SaveResult] = []
        for name, ids in self._dispatch("save", selected, lambda store: store.save(context, prepared)):
            results.extend(SaveResult(id=key, store=name) for key in ids)
        logger.info("Saved {} records across {} stores", len(prepared), len({r.store for r in results}))
        return results

    def query(
        self,
        context: AccountContext,
        credential_filter: CredentialFilter | None = None,
        options: QueryOptions | None = None,
    ) -> list[QueryResult]:
        """
        Query every selected store and concatenate results in selection order.

        No de-duplication across stores; `options.return_store` controls metadata.store.
        With return_store False, metadata.store is None and is dropped from model_dump().
        """
        options = options or QueryOptions()
        selected = self._select(options)
        results: list[QueryResult] = []
        for name, records in self._dispatch("query", selected, lambda store: store.query(context, credential_filter)):
            for record in records:
                metadata = QueryMetadata(id=record.id, store=name if options.return_store else None)
                results.append(QueryResult(data=record.data, metadata=metadata))
        logger.debug("Query returned {} records from {} stores", len(results), len(selected))
        return results

    def delete(
        self,
        context: AccountContext,
        ids: str | list[str],
        options: StoreOptions | None = None,
    ) -> list[DeleteResult]:
        """
        Delete ids from every selected store; one DeleteResult per store that answered.

        Each result's `id` is `ids` as given, a string or a list. An empty list
        returns [] without touching any store.
        """
        id_list = [ids] if isinstance(ids, str) else list(ids)
        selected = self._select(options)
        if not id_list:
            return []
        return [
            DeleteResult(id=ids if isinstance(ids, str) else id_list, removed=removed, store=name)
            for name, removed in self._dispatch("delete", selected, lambda store: store.delete(context, id_list))
        ]

    def clear(
        self,
        context: AccountContext,
        credential_filter: CredentialFilter | None = None,
        options: StoreOptions | None = None,
    ) -> list[ClearResult]:
        """
        Clear every selected store.

        Stores differ on filters: the local store removes only matching
        records, the Google Drive store wipes its whole collection.
        """
        selected = self._select(options)
        return [
            ClearResult(removed=removed, store=name)
            for name, removed in self._dispatch("clear", selected, lambda store: store.clear(context, credential_filter))
        ]

    def close(self) -> None:
        for store in self._stores.values():
            store.close()
