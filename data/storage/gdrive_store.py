"""Google Drive remote credential store.

The account's whole collection lives in one JSON file on the user's Drive.
There is no partial write: every mutation downloads the file, edits it in
memory, and uploads it again. Two overlapping writers for the same account
race and the later upload wins.
"""

import json
from typing import Any

import requests
from loguru import logger

from data.codec.jwt_codec import JwtCredentialCodec
from data.schemas.credential import AccountContext, CredentialFilter, CredentialRecord, new_credential_id
from data.storage.base_store import BaseCredentialStore
from data.storage.errors import RemoteNotConfiguredError, RemoteStoreError

GOOGLE_DRIVE_VCS_FILE_NAME = "identity-vcs.json"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
TOKEN_INFO_URL = "https://www.googleapis.com/oauth2/v3/tokeninfo"
MULTIPART_BOUNDARY = "314159265358979323846"


def build_multipart_body(file_name: str, content: str, boundary: str = MULTIPART_BOUNDARY) -> str:
    """Build a multipart/related body: JSON metadata part followed by the file content part."""
    metadata = {"name": file_name, "mimeType": "text/plain"}
    delimiter = f"\r\n--{boundary}\r\n"
    close_delim = f"\r\n--{boundary}--"
    return (
        f"{delimiter}Content-Type: application/json\r\n\r\n{json.dumps(metadata)}"
        f"{delimiter}Content-Type: text/plain\r\n\r\n{content}"
        f"{close_delim}"
    )


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveStore(BaseCredentialStore):
    """
    Credential store backed by a single JSON file in Google Drive.

    Must be configured with a validated access token per account before use.
    Records may be kept as objects or compact JWTs; JWTs are decoded through
    the codec on read. Clear ignores any filter and wipes the whole file.
    A missing file is treated as an empty collection.
    """

    def __init__(
        self,
        file_name: str = GOOGLE_DRIVE_VCS_FILE_NAME,
        codec: JwtCredentialCodec | None = None,
        session: requests.Session | None = None,
        timeout: int = 30,
    ) -> None:
        self.file_name = file_name
        self.codec = codec or JwtCredentialCodec()
        self.session = session or requests.Session()
        self.timeout = timeout

        # account -> validated access token
        self._tokens: dict[str, str] = {}

    # ---- configuration ----

    def configure(self, context: AccountContext) -> bool:
        """
        Validate the context's access token with Google and bind it to the account.

        Raises:
            RemoteNotConfiguredError: If no token is given or Google rejects it.
                Any token previously bound to the account is dropped.
        """
        if not context.access_token:
            self._tokens.pop(context.account, None)
            raise RemoteNotConfiguredError("No Google access token provided")

        try:
            response = self.session.get(
                TOKEN_INFO_URL,
                params={"access_token": context.access_token},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self._tokens.pop(context.account, None)
            logger.error("Could not configure google account {}: {}", context.account, e)
            raise RemoteStoreError(f"Token validation request failed: {e}") from e

        if response.status_code != 200:
            self._tokens.pop(context.account, None)
            logger.error("Google rejected access token for {} ({})", context.account, response.status_code)
            raise RemoteNotConfiguredError("Invalid Google access token")

        self._tokens[context.account] = context.access_token
        logger.info("Configured Google Drive store for {}", context.account)
        return True

    def is_configured(self, context: AccountContext) -> bool:
        return context.account in self._tokens

    def _token(self, context: AccountContext) -> str:
        token = self._tokens.get(context.account)
        if token is None:
            raise RemoteNotConfiguredError(f"Google Drive store not configured for account {context.account}")
        if context.access_token and context.access_token != token:
            raise RemoteNotConfiguredError("Access token differs from the configured one; configure again")
        return token

    # ---- HTTP ----

    def _request(self, context: AccountContext, method: str, url: str, **kwargs: Any) -> requests.Response:
        token = self._token(context)
        headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"Google Drive request failed: {e}") from e

        if response.status_code == 401:
            # Expired or revoked: every later call fails until configured again.
            self._tokens.pop(context.account, None)
            raise RemoteNotConfiguredError("Google access token is no longer valid")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise RemoteStoreError(f"Google Drive returned {response.status_code}: {e}") from e
        return response

    def _find_file_id(self, context: AccountContext) -> str | None:
        """Id of the newest non-trashed file named file_name, or None."""
        response = self._request(
            context,
            "GET",
            DRIVE_FILES_URL,
            params={
                "q": f"name='{_escape_query(self.file_name)}' and trashed=false",
                "orderBy": "modifiedTime desc",
                "fields": "files(id,name,modifiedTime)",
                "pageSize": 1,
            },
        )
        files = response.json().get("files") or []
        return files[0]["id"] if files else None

    def _download(self, context: AccountContext, file_id: str) -> dict[str, Any]:
        response = self._request(context, "GET", f"{DRIVE_FILES_URL}/{file_id}", params={"alt": "media"})
        if not response.text.strip():
            return {}
        try:
            collection = json.loads(response.text)
        except json.JSONDecodeError as e:
            raise RemoteStoreError(f"Invalid vcs file {self.file_name}: {e}") from e
        if not isinstance(collection, dict):
            raise RemoteStoreError(f"Invalid vcs file {self.file_name}: expected a JSON object")
        return collection

    def upload(self, context: AccountContext, collection: dict[str, Any]) -> str:
        """
        Upload the whole collection as a new revision of the vcs file.

        Returns:
            The Drive file id of the uploaded file.
        """
        body = build_multipart_body(self.file_name, json.dumps(collection))
        response = self._request(
            context,
            "POST",
            DRIVE_UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id"},
            headers={"Content-Type": f"multipart/related; boundary={MULTIPART_BOUNDARY}"},
            data=body.encode("utf-8"),
        )
        file_id = response.json().get("id")
        if not file_id:
            raise RemoteStoreError("Google Drive upload returned no file id")
        logger.debug("Uploaded {} ({} records) for {}: {}", self.file_name, len(collection), context.account, file_id)
        return file_id

    # ---- store capability ----

    def load_collection(self, context: AccountContext) -> dict[str, Any]:
        file_id = self._find_file_id(context)
        if file_id is None:
            logger.debug("No {} on Drive for {}; treating as empty", self.file_name, context.account)
            return {}
        return self._download(context, file_id)

    def replace_collection(self, context: AccountContext, collection: dict[str, Any]) -> None:
        self.upload(context, collection)
        logger.info("Replaced Drive collection for {} ({} records)", context.account, len(collection))

    def decode_record(self, value: Any) -> Any:
        if self.codec.is_token(value):
            return self.codec.decode(value)
        return value

    def save(self, context: AccountContext, records: list[CredentialRecord]) -> list[str]:
        file_id = self._find_file_id(context)
        if file_id is None:
            logger.info("Creating empty {} on Drive for {}", self.file_name, context.account)
            self.upload(context, {})
            collection: dict[str, Any] = {}
        else:
            collection = self._download(context, file_id)

        ids: list[str] = []
        for record in records:
            key = record.id or new_credential_id()
            collection[key] = record.data
            ids.append(key)

        self.upload(context, collection)
        logger.info("Saved {} credentials to Google Drive for {}", len(ids), context.account)
        return ids

    def delete(self, context: AccountContext, ids: list[str]) -> bool:
        collection = self.load_collection(context)
        removed = [key for key in ids if key in collection]
        if not removed:
            logger.info("None of {} ids found on Google Drive for {}", len(ids), context.account)
            return False
        for key in removed:
            del collection[key]
        self.upload(context, collection)
        logger.info("Deleted {}/{} credentials from Google Drive for {}", len(removed), len(ids), context.account)
        return True

    def clear(self, context: AccountContext, credential_filter: CredentialFilter | None = None) -> bool:
        if credential_filter is not None:
            logger.debug("Google Drive clear ignores {} filter; wiping whole collection", credential_filter.kind.value)
        self.upload(context, {})
        logger.info("Cleared Google Drive store for {}", context.account)
        return True

    def close(self) -> None:
        self.session.close()
