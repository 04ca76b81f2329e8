"""
File-backed local state: the login session and viewed notification ids.

Both stores are small JSON files in the user's home directory, written
with owner-only permissions.
"""

import json
import logging
from pathlib import Path
from typing import List

from ..domain.models import AuthSession

logger = logging.getLogger(__name__)


def _write_private_json(path: Path, data) -> None:
    """Write JSON to ``path`` and restrict it to the owner."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)
    path.chmod(0o600)


def _read_json(path: Path):
    """Read JSON from ``path``; missing or corrupt files read as None."""
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None


class SessionStore:
    """
    Persists the access and refresh tokens returned by login.

    The store is cleared whenever the backend rejects the credentials.
    """

    def __init__(self, session_file: Path):
        self.session_file = session_file

    def load(self) -> AuthSession | None:
        """Return the stored session, or None when logged out."""
        data = _read_json(self.session_file)
        if not isinstance(data, dict) or not data.get("access_token"):
            return None
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
        )

    def save(self, session: AuthSession) -> None:
        _write_private_json(
            self.session_file,
            {"access_token": session.access_token, "refresh_token": session.refresh_token},
        )
        logger.debug("Session saved to %s", self.session_file)

    def clear(self) -> None:
        """Forget the session (forces re-authentication)."""
        if self.session_file.exists():
            self.session_file.unlink()
        logger.info("Session cleared")


class ViewedNotificationStore:
    """Key-value store of completed booking ids the user has already seen."""

    def __init__(self, store_file: Path):
        self.store_file = store_file

    def get_ids(self) -> List[int]:
        data = _read_json(self.store_file)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, int)]

    def set_ids(self, ids: List[int]) -> None:
        _write_private_json(self.store_file, sorted(set(ids)))
