"""SQLite-backed database store for the long-lived page token."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from pagetoken.core.errors import StorageError
from pagetoken.models.credential import CredentialRecord
from pagetoken.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class SQLiteTokenStore:
    """Keep token rows in a table where the highest id is the current token."""

    def __init__(
        self, db_path: str, *, cipher: Optional[TokenCipherService] = None
    ) -> None:
        self._db_path = Path(db_path)
        self._cipher = cipher
        try:
            if self._db_path.parent and not self._db_path.parent.exists():
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Unable to initialise token database {self._db_path}") from exc

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS page_access_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    access_token TEXT NOT NULL,
                    token_type TEXT NOT NULL DEFAULT 'bearer',
                    expires_at TEXT NOT NULL,
                    last_refreshed TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def load(self) -> Optional[CredentialRecord]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM page_access_tokens ORDER BY id DESC LIMIT 1"
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError("Failed to load token from database") from exc
        if not row:
            return None

        access_token = row["access_token"]
        if self._cipher is not None:
            access_token = self._cipher.unseal(
                access_token, source=f"{self._db_path} row {row['id']}"
            )

        try:
            return CredentialRecord(
                id=row["id"],
                access_token=access_token,
                token_type=row["token_type"],
                expires_at=datetime.fromisoformat(row["expires_at"]),
                last_refreshed=datetime.fromisoformat(row["last_refreshed"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
        except (ValidationError, TypeError, ValueError) as exc:
            raise StorageError(
                f"Token row {row['id']} in {self._db_path} is unusable"
            ) from exc

    def save(self, record: CredentialRecord) -> None:
        if not record.access_token:
            raise ValueError("Refusing to persist an empty access token")

        stored_token = record.access_token
        if self._cipher is not None:
            stored_token = self._cipher.seal(stored_token)
        now = datetime.now(timezone.utc).isoformat()

        try:
            with self._connect() as conn:
                current = conn.execute(
                    "SELECT id FROM page_access_tokens ORDER BY id DESC LIMIT 1"
                ).fetchone()
                if current:
                    conn.execute(
                        """
                        UPDATE page_access_tokens
                        SET access_token = ?, token_type = ?, expires_at = ?,
                            last_refreshed = ?, updated_at = ?
                        WHERE id = ?
                        """,
                        (
                            stored_token,
                            record.token_type,
                            record.expires_at.isoformat(),
                            record.last_refreshed.isoformat(),
                            now,
                            current["id"],
                        ),
                    )
                    row_id = current["id"]
                else:
                    cursor = conn.execute(
                        """
                        INSERT INTO page_access_tokens
                            (access_token, token_type, expires_at, last_refreshed,
                             created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            stored_token,
                            record.token_type,
                            record.expires_at.isoformat(),
                            record.last_refreshed.isoformat(),
                            record.created_at.isoformat(),
                            now,
                        ),
                    )
                    row_id = cursor.lastrowid
        except sqlite3.Error as exc:
            raise StorageError("Failed to persist token to database") from exc

        logger.info("Stored page token in database (row %s)", row_id)


__all__ = ["SQLiteTokenStore"]
