"""Exceptions raised by the credential storage layer."""


class CredentialStoreError(Exception):
    """Base class for every storage-layer error."""


class StoreNotFoundError(CredentialStoreError):
    """A selected store name is not registered with the DataManager."""

    def __init__(self, store_name: str):
        self.store_name = store_name
        super().__init__(f"Store plugin {store_name} not found")


class BackendOperationError(CredentialStoreError):
    """One store failed during a fan-out; recorded, never propagated by DataManager."""

    def __init__(self, store_name: str, operation: str, cause: BaseException):
        self.store_name = store_name
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed on store {store_name}: {cause}")


class RemoteNotConfiguredError(CredentialStoreError):
    """Remote document store used before a valid access token was configured."""


class RemoteStoreError(CredentialStoreError):
    """Transport, HTTP, or payload failure talking to the remote drive."""


class InvalidFilterExpressionError(CredentialStoreError):
    """A byPath filter expression could not be parsed or evaluated."""


class UserRejectedError(CredentialStoreError):
    """The caller declined a confirmation prompt."""

    def __init__(self, message: str = "User rejected"):
        super().__init__(message)
