"""Store factory: build the default store registry from settings."""

from loguru import logger

from data.codec.jwt_codec import JwtCredentialCodec
from data.storage.data_manager import DataManager
from data.storage.gdrive_store import GoogleDriveStore
from data.storage.local_store import LocalCredentialStore
from data.storage.sync import LOCAL_STORE, REMOTE_STORE
from infra.settings import Settings


def build_data_manager(settings: Settings) -> DataManager:
    """
    Return a DataManager over the local DuckDB store and the Google Drive store.

    The Drive store is registered unconfigured; call DataManager.configure with
    an AccountContext carrying an access token before using it.
    """
    stores = {
        LOCAL_STORE: LocalCredentialStore(settings.duckdb_path),
        REMOTE_STORE: GoogleDriveStore(
            file_name=settings.drive_file_name,
            codec=JwtCredentialCodec(),
            timeout=settings.drive_timeout,
        ),
    }
    logger.debug("Built store registry: {}", list(stores))
    return DataManager(stores)
