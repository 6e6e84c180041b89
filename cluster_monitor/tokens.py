"""Persisted "remember me" credentials.

Tokens are stored in a single JSON file keyed by normalized API base URL::

    {
      "http://localhost:8080": {
        "token": "...",
        "refreshToken": "...",
        "expiry": 1767225600,
        "rememberedAt": 1767139200
      }
    }

The file is always replaced atomically and is readable by its owner only.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cluster_monitor.exceptions import PersistenceError
from cluster_monitor.logging_config import get_logger
from cluster_monitor.models.session import Session

logger = get_logger(__name__)


def normalize_url(url: str) -> str:
    return url.rstrip("/")


def _to_epoch(value: datetime | None) -> int | None:
    return int(value.timestamp()) if value is not None else None


def _from_epoch(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, int | float) or isinstance(value, bool):
        raise ValueError(f"invalid timestamp: {value!r}")
    return datetime.fromtimestamp(value, tz=timezone.utc)


class TokenStore:
    """Reads and writes remembered sessions."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self, url: str) -> Session | None:
        """Load the remembered session for a base URL.

        Returns:
            Session, or None if nothing is remembered for this URL

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed
        """
        entries = self._read()
        entry = entries.get(normalize_url(url))
        if entry is None:
            return None
        try:
            return Session(
                access_token=entry["token"],
                refresh_token=entry.get("refreshToken"),
                expiry=_from_epoch(entry.get("expiry")),
                remember=True,
                remembered_at=_from_epoch(entry.get("rememberedAt")),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise PersistenceError(f"Remembered session for {url} is corrupt", str(e)) from e

    def save(self, url: str, session: Session) -> None:
        """Remember a session for a base URL, keeping entries for other URLs.

        Raises:
            PersistenceError: If the file cannot be written
        """
        try:
            entries = self._read()
        except PersistenceError as e:
            logger.warning(f"Discarding unreadable token file: {e.message}")
            entries = {}

        remembered_at = session.remembered_at or datetime.now(timezone.utc)
        entries[normalize_url(url)] = {
            "token": session.access_token,
            "refreshToken": session.refresh_token,
            "expiry": _to_epoch(session.expiry),
            "rememberedAt": _to_epoch(remembered_at),
        }
        self._write(entries)
        logger.debug(f"Remembered session for {normalize_url(url)} in {self.path}")

    def delete(self, url: str) -> None:
        """Forget the session for a base URL; removes the file when it becomes empty.

        Raises:
            PersistenceError: If the file cannot be rewritten or removed
        """
        if not self.path.exists():
            return
        try:
            entries = self._read()
        except PersistenceError:
            entries = {}

        entries.pop(normalize_url(url), None)
        if entries:
            self._write(entries)
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(f"Cannot remove {self.path}", str(e)) from e
        logger.debug(f"Removed token file {self.path}")

    def _read(self) -> dict[str, dict[str, Any]]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise PersistenceError(f"Cannot read {self.path}", str(e)) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Token file {self.path} is not valid JSON", str(e)) from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Token file {self.path} has an unexpected layout")
        return {k: v for k, v in data.items() if isinstance(v, dict)}

    def _write(self, entries: dict[str, dict[str, Any]]) -> None:
        parent = self.path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            if os.name == "posix":
                parent.chmod(0o700)
        except OSError as e:
            raise PersistenceError(f"Cannot create {parent}", str(e)) from e

        # mkstemp creates the file with mode 0600
        try:
            fd, temp_path = tempfile.mkstemp(dir=parent, prefix=".tokens_", suffix=".json")
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}", str(e)) from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2)
            os.replace(temp_path, self.path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise PersistenceError(f"Cannot write {self.path}", str(e)) from e
