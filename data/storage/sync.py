"""Pull credentials that exist only on Google Drive into the local store.

Sync is one-directional: remote-only ids are copied into the local store,
then the merged local collection is uploaded back to Drive. Local-only
records are never deleted.
"""

from typing import Callable

from loguru import logger

from data.schemas.credential import AccountContext, CredentialRecord
from data.storage.data_manager import DataManager
from data.storage.errors import UserRejectedError

LOCAL_STORE = "local"
REMOTE_STORE = "googleDrive"

ConfirmCallback = Callable[[list[str]], bool]


def _always_confirm(ids: list[str]) -> bool:
    return True


class CredentialSync:
    """Reconcile one account's local store with its Google Drive collection."""

    def __init__(
        self,
        manager: DataManager,
        local_store: str = LOCAL_STORE,
        remote_store: str = REMOTE_STORE,
    ):
        self.local = manager.get_store(local_store)
        self.remote = manager.get_store(remote_store)

    def sync(self, context: AccountContext, confirm: ConfirmCallback = _always_confirm) -> bool:
        """
        Merge remote-only credentials into the local store and re-upload the merged set.

        Args:
            context: Account and access token to sync.
            confirm: Receives the ids about to be pulled; returning False aborts.

        Returns:
            True once the local store and Drive hold the merged collection.

        Raises:
            UserRejectedError: If confirm returns False. Nothing is written.
            RemoteStoreError / RemoteNotConfiguredError: If Drive cannot be read.
        """
        local_ids = set(self.local.load_collection(context))
        remote_collection = self.remote.load_collection(context)
        diff_ids = [key for key in remote_collection if key not in local_ids]

        logger.info(
            "Sync for {}: {} local, {} remote, {} to pull",
            context.account,
            len(local_ids),
            len(remote_collection),
            len(diff_ids),
        )
        if not confirm(diff_ids):
            logger.warning("Sync rejected for {}", context.account)
            raise UserRejectedError()

        if diff_ids:
            self.local.save(context, [CredentialRecord(id=key, data=remote_collection[key]) for key in diff_ids])

        merged = self.local.load_collection(context)
        self.remote.replace_collection(context, merged)
        logger.success("Synced {} credentials for {} ({} total)", len(diff_ids), context.account, len(merged))
        return True
