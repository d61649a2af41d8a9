"""Storage layer: DuckDB local + Google Drive remote credential stores."""

from data.storage.base_store import BaseCredentialStore
from data.storage.data_manager import DataManager
from data.storage.errors import (
    BackendOperationError,
    CredentialStoreError,
    InvalidFilterExpressionError,
    RemoteNotConfiguredError,
    RemoteStoreError,
    StoreNotFoundError,
    UserRejectedError,
)
from data.storage.gdrive_store import GoogleDriveStore
from data.storage.local_store import LocalCredentialStore
from data.storage.store_factory import build_data_manager
from data.storage.sync import CredentialSync

__all__ = [
    "BackendOperationError",
    "BaseCredentialStore",
    "CredentialStoreError",
    "CredentialSync",
    "DataManager",
    "GoogleDriveStore",
    "InvalidFilterExpressionError",
    "LocalCredentialStore",
    "RemoteNotConfiguredError",
    "RemoteStoreError",
    "StoreNotFoundError",
    "UserRejectedError",
    "build_data_manager",
]
