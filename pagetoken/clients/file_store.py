"""Flat JSON file store used for local and standalone deployments."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from pagetoken.core.errors import StorageError
from pagetoken.models.credential import CredentialRecord
from pagetoken.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


def _to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_epoch_ms(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class JSONFileTokenStore:
    """Persist the current token as ``{access_token, expires_at, last_refreshed}``.

    Timestamps are epoch milliseconds. Writes land in a temporary sibling file
    that atomically replaces the target, so concurrent readers only ever see a
    complete document.
    """

    def __init__(
        self, path: str, *, cipher: Optional[TokenCipherService] = None
    ) -> None:
        self._path = Path(path)
        self._cipher = cipher

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[CredentialRecord]:
        if not self._path.exists():
            return None
        try:
            payload: Dict[str, Any] = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to read token file {self._path}") from exc

        try:
            access_token = payload["access_token"]
            expires_at = _from_epoch_ms(payload["expires_at"])
            last_refreshed = _from_epoch_ms(
                payload.get("last_refreshed", payload["expires_at"])
            )
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise StorageError(f"Token file {self._path} is malformed") from exc

        if self._cipher is not None:
            access_token = self._cipher.unseal(access_token, source=str(self._path))

        try:
            return CredentialRecord(
                access_token=access_token,
                expires_at=expires_at,
                last_refreshed=last_refreshed,
                created_at=last_refreshed,
                updated_at=last_refreshed,
            )
        except ValidationError as exc:
            raise StorageError(
                f"Token file {self._path} holds an unusable token record"
            ) from exc

    def save(self, record: CredentialRecord) -> None:
        if not record.access_token:
            raise ValueError("Refusing to persist an empty access token")

        stored_token = record.access_token
        if self._cipher is not None:
            stored_token = self._cipher.seal(stored_token)
        document = {
            "access_token": stored_token,
            "expires_at": _to_epoch_ms(record.expires_at),
            "last_refreshed": _to_epoch_ms(record.last_refreshed),
        }

        try:
            if self._path.parent and not self._path.parent.exists():
                self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write token file {self._path}") from exc

        logger.info("Stored page token to file %s", self._path)


__all__ = ["JSONFileTokenStore"]
