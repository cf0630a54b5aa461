"""Local persistence for the operator's token pair and user object."""

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from prison_console.domain.session import (
    StoredSession,
    TokenPair,
    session_from_payload,
)

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Persistence interface for the operator session."""

    def load(self) -> StoredSession | None:
        """Return the stored session, if any."""

    def save(self, stored: StoredSession) -> None:
        """Persist the session, replacing any previous one."""

    def clear(self) -> None:
        """Forget the stored session."""


@dataclass
class JsonFileSessionStore(SessionStore):
    """Session store backed by a small JSON file."""

    path: Path

    @classmethod
    def for_token(cls, directory: Path, token: str) -> "JsonFileSessionStore":
        """Store for one console credential; the file name does not reveal it."""
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return cls(directory / f"{digest}.json")

    def load(self) -> StoredSession | None:
        """Return the stored session; unreadable data is discarded."""
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            access_token = raw["accessToken"]
            user = raw["user"]
            if not access_token or not isinstance(user, dict):
                raise ValueError("incomplete session file")
            return StoredSession(
                tokens=TokenPair(
                    access_token=access_token,
                    refresh_token=raw.get("refreshToken"),
                ),
                session=session_from_payload(user),
                user_payload=user,
            )
        except (OSError, ValueError, KeyError, TypeError):
            logger.exception("Discarding unreadable session file")
            self.clear()
            return None

    def save(self, stored: StoredSession) -> None:
        """Write the session atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "accessToken": stored.tokens.access_token,
            "refreshToken": stored.tokens.refresh_token,
            "user": stored.user_payload,
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        tmp_path.replace(self.path)

    def clear(self) -> None:
        """Remove the session file if present."""
        self.path.unlink(missing_ok=True)
