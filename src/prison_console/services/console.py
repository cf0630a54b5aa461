"""Per-client console sessions keyed by an opaque credential."""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from prison_console.adapters.prisoner_api import PrisonerApi
from prison_console.services.auth import AuthService
from prison_console.services.notifications import NotificationCenter
from prison_console.services.records import RecordService
from prison_console.services.wizard import WizardRegistry

logger = logging.getLogger(__name__)


@dataclass
class ConsoleSession:
    """Everything one browser works with: sign-in, services, toasts, drafts."""

    token: str
    auth_service: AuthService
    notifications: NotificationCenter
    record_services: dict[str, RecordService]
    prisoner_api: PrisonerApi
    wizards: WizardRegistry
    last_seen: float = 0.0


ConsoleFactory = Callable[[str], ConsoleSession]


@dataclass
class ConsoleSessionRegistry:
    """Console sessions handed out at sign-in.

    Requests only reach a session by presenting its credential; a request
    without one is anonymous no matter who else is signed in.
    """

    factory: ConsoleFactory
    idle_timeout_seconds: float = 8 * 3600.0
    clock: Callable[[], float] = time.monotonic
    _sessions: dict[str, ConsoleSession] = field(default_factory=dict)

    def open(self) -> ConsoleSession:
        """Start a console session under a fresh credential."""
        self._evict_idle()
        console = self.factory(secrets.token_urlsafe(32))
        console.last_seen = self.clock()
        self._sessions[console.token] = console
        return console

    def resolve(self, token: str | None) -> ConsoleSession | None:
        """Return the signed-in session for ``token``.

        A session evicted from memory is rebuilt from its persisted sign-in.
        """
        if not token:
            return None
        self._evict_idle()
        console = self._sessions.get(token)
        if console is None:
            candidate = self.factory(token)
            if candidate.auth_service.restore() is None:
                return None
            console = self._sessions[token] = candidate
        console.last_seen = self.clock()
        return console

    async def end(self, token: str) -> None:
        """Sign the session out on the backend and forget it."""
        console = self.resolve(token)
        if console is None:
            return
        await console.auth_service.logout()
        self._sessions.pop(token, None)

    def discard(self, token: str) -> None:
        self._sessions.pop(token, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict_idle(self) -> None:
        cutoff = self.clock() - self.idle_timeout_seconds
        expired = [
            token
            for token, console in self._sessions.items()
            if console.last_seen < cutoff
        ]
        for token in expired:
            # Drafts and queued toasts go with it; the sign-in stays on disk.
            del self._sessions[token]
        if expired:
            logger.info("Evicted idle console sessions", extra={"count": len(expired)})
