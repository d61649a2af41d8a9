"""DuckDB local credential store.

Records are partitioned by account and every public call runs inside a
single DuckDB transaction, so a call either fully persists or leaves the
account's records untouched.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import duckdb
from loguru import logger

from data.schemas.credential import (
    AccountContext,
    CredentialFilter,
    CredentialRecord,
    FilterKind,
    new_credential_id,
)
from data.storage.base_store import BaseCredentialStore
from data.storage.filters import resolve_filter

MEMORY_DB = ":memory:"


class LocalCredentialStore(BaseCredentialStore):
    """
    DuckDB-backed credential store holding per-account keyed state.

    Honors filters on clear: with a filter only the matching records are
    removed, without one the account's whole collection is wiped.
    """

    def __init__(self, db_path: Path | str = MEMORY_DB):
        """
        Initialize the local store.

        Args:
            db_path: Path to the DuckDB database file, or ":memory:".
        """
        self.db_path = str(db_path)
        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = duckdb.connect(self.db_path)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create credentials table if it doesn't exist."""
        self.conn.execute("CREATE SEQUENCE IF NOT EXISTS credential_seq START 1")
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS credentials (
                account VARCHAR NOT NULL,
                id VARCHAR NOT NULL,
                data JSON NOT NULL,
                seq BIGINT NOT NULL
            )
        """)
        logger.debug("DuckDB credential schema ensured at {}", self.db_path)

    @contextmanager
    def _transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        self.conn.begin()
        try:
            yield self.conn
        except Exception:
            self.conn.rollback()
            raise
        else:
            self.conn.commit()

    def _write(self, conn: duckdb.DuckDBPyConnection, account: str, key: str, data: Any) -> None:
        conn.execute("DELETE FROM credentials WHERE account = ? AND id = ?", (account, key))
        conn.execute(
            """
            INSERT INTO credentials (account, id, data, seq)
            VALUES (?, ?, ?, nextval('credential_seq'))
            """,
            (account, key, json.dumps(data)),
        )

    def _ids(self, conn: duckdb.DuckDBPyConnection, account: str) -> list[str]:
        rows = conn.execute(
            "SELECT id FROM credentials WHERE account = ? ORDER BY seq",
            (account,),
        ).fetchall()
        return [row[0] for row in rows]

    def _remove(self, conn: duckdb.DuckDBPyConnection, account: str, ids: list[str]) -> None:
        for key in ids:
            conn.execute("DELETE FROM credentials WHERE account = ? AND id = ?", (account, key))

    def load_collection(self, context: AccountContext) -> dict[str, Any]:
        rows = self.conn.execute(
            "SELECT id, data FROM credentials WHERE account = ? ORDER BY seq",
            (context.account,),
        ).fetchall()
        return {row[0]: json.loads(row[1]) for row in rows}

    def replace_collection(self, context: AccountContext, collection: dict[str, Any]) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM credentials WHERE account = ?", (context.account,))
            for key, data in collection.items():
                self._write(conn, context.account, key, data)
        logger.info("Replaced local collection for {} ({} records)", context.account, len(collection))

    def save(self, context: AccountContext, records: list[CredentialRecord]) -> list[str]:
        """
        Save records for the context's account.

        Re-saving an existing id replaces its data (delete + save cycle).
        """
        ids: list[str] = []
        with self._transaction() as conn:
            for record in records:
                key = record.id or new_credential_id()
                self._write(conn, context.account, key, record.data)
                ids.append(key)
        logger.info("Saved {} credentials to local store for {}", len(ids), context.account)
        return ids

    def delete(self, context: AccountContext, ids: list[str]) -> bool:
        with self._transaction() as conn:
            existing = set(self._ids(conn, context.account))
            removed = [key for key in ids if key in existing]
            self._remove(conn, context.account, removed)
        logger.info("Deleted {}/{} credentials from local store for {}", len(removed), len(ids), context.account)
        return bool(removed)

    def clear(self, context: AccountContext, credential_filter: CredentialFilter | None = None) -> bool:
        if credential_filter is None or credential_filter.kind == FilterKind.none:
            with self._transaction() as conn:
                conn.execute("DELETE FROM credentials WHERE account = ?", (context.account,))
            logger.info("Cleared local store for {}", context.account)
            return True

        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, data FROM credentials WHERE account = ? ORDER BY seq",
                (context.account,),
            ).fetchall()
            collection = {row[0]: json.loads(row[1]) for row in rows}
            matched = [record.id for record in resolve_filter(collection, credential_filter)]
            self._remove(conn, context.account, matched)
        logger.info(
            "Cleared {} credentials matching {} filter from local store for {}",
            len(matched),
            credential_filter.kind.value,
            context.account,
        )
        return True

    def get_stats(self) -> dict:
        """Get credential counts per account."""
        total = self.conn.execute("SELECT COUNT(*) FROM credentials").fetchone()[0]
        by_account = self.conn.execute(
            "SELECT account, COUNT(*) FROM credentials GROUP BY account"
        ).fetchall()
        return {
            "total_credentials": total,
            "by_account": {account: count for account, count in by_account},
        }

    def close(self) -> None:
        self.conn.close()
