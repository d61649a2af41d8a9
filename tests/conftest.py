"""
Shared fixtures: in-memory DuckDB local store and a fake Google Drive HTTP session.
No network calls are made.
"""

import json
from itertools import count
from typing import Any
from urllib.parse import urlparse

import pytest
import requests

from data.schemas.credential import AccountContext
from data.storage.gdrive_store import (
    DRIVE_FILES_URL,
    DRIVE_UPLOAD_URL,
    MULTIPART_BOUNDARY,
    TOKEN_INFO_URL,
    GoogleDriveStore,
)
from data.storage.local_store import MEMORY_DB, LocalCredentialStore

VALID_TOKEN = "ya29.valid-token"
SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def make_response(status_code: int, body: Any = None, url: str = "") -> requests.Response:
    """Build a real requests.Response with the given status and body."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.encoding = "utf-8"
    if body is None:
        response._content = b""
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = json.dumps(body).encode("utf-8")
    return response


def parse_multipart_content(body: bytes) -> str:
    """Extract the file content part from an upload body."""
    text = body.decode("utf-8")
    marker = "Content-Type: text/plain\r\n\r\n"
    start = text.index(marker) + len(marker)
    end = text.rindex(f"\r\n--{MULTIPART_BOUNDARY}--")
    return text[start:end]


class FakeDriveSession:
    """
    Stand-in for requests.Session speaking the subset of the Drive v3 API the store uses.
    Every upload creates a new file; lookups return the newest one by name.
    """

    def __init__(self, valid_tokens: set[str] | None = None):
        self.valid_tokens = valid_tokens if valid_tokens is not None else {VALID_TOKEN}
        self.files: list[dict[str, Any]] = []
        self.uploads: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.closed = False
        self._ids = count(1)

    def put_collection(self, name: str, collection: dict[str, Any]) -> None:
        self.files.append({"id": f"file-{next(self._ids)}", "name": name, "content": json.dumps(collection)})

    def latest(self, name: str) -> dict[str, Any] | None:
        for file in reversed(self.files):
            if file["name"] == name:
                return json.loads(file["content"]) if file["content"] else {}
        return None

    def get(self, url: str, params: dict | None = None, timeout: int | None = None) -> requests.Response:
        if url == TOKEN_INFO_URL:
            token = (params or {}).get("access_token")
            if token in self.valid_tokens:
                return make_response(200, {"scope": "https://www.googleapis.com/auth/drive.file"}, url)
            return make_response(400, {"error": "invalid_token"}, url)
        return self.request("GET", url, params=params, timeout=timeout)

    def request(
        self,
        method: str,
        url: str,
        headers: dict | None = None,
        params: dict | None = None,
        data: bytes | None = None,
        timeout: int | None = None,
    ) -> requests.Response:
        if self.fail_with is not None:
            raise self.fail_with
        token = (headers or {}).get("Authorization", "").removeprefix("Bearer ")
        if token not in self.valid_tokens:
            return make_response(401, {"error": "unauthorized"}, url)

        params = params or {}
        if method == "GET" and url == DRIVE_FILES_URL:
            name = params["q"].split("'")[1]
            matches = [f for f in reversed(self.files) if f["name"] == name]
            return make_response(200, {"files": [{"id": f["id"], "name": f["name"]} for f in matches[:1]]}, url)

        if method == "GET" and url.startswith(DRIVE_FILES_URL + "/") and params.get("alt") == "media":
            file_id = urlparse(url).path.rsplit("/", 1)[-1]
            for file in self.files:
                if file["id"] == file_id:
                    return make_response(200, file["content"], url)
            return make_response(404, {"error": "notFound"}, url)

        if method == "POST" and url == DRIVE_UPLOAD_URL:
            content = parse_multipart_content(data or b"")
            name = json.loads(data.decode("utf-8").split("\r\n\r\n", 1)[1].split("\r\n", 1)[0])["name"]
            file_id = f"file-{next(self._ids)}"
            self.files.append({"id": file_id, "name": name, "content": content})
            self.uploads.append({"headers": headers, "params": params, "content": json.loads(content)})
            return make_response(200, {"id": file_id}, url)

        return make_response(404, {"error": "unsupported"}, url)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def context() -> AccountContext:
    return AccountContext(account="0xabc", access_token=VALID_TOKEN)


@pytest.fixture
def local_store():
    store = LocalCredentialStore(MEMORY_DB)
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def drive_session() -> FakeDriveSession:
    return FakeDriveSession()


@pytest.fixture
def drive_store(drive_session: FakeDriveSession, context: AccountContext) -> GoogleDriveStore:
    store = GoogleDriveStore(file_name="vcs.json", session=drive_session)
    store.configure(context)
    return store
