"""Operator authentication and session lifecycle."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from prison_console.adapters.auth_api import AuthApi
from prison_console.adapters.session_store import SessionStore
from prison_console.domain.session import (
    Session,
    StoredSession,
    TokenPair,
    session_from_payload,
)
from prison_console.errors import BackendError, NotAuthenticatedError

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Holds the latest session snapshot; every change replaces it whole."""

    store: SessionStore
    _current: StoredSession | None = None

    @property
    def current(self) -> StoredSession | None:
        return self._current

    @property
    def session(self) -> Session | None:
        snapshot = self._current
        return snapshot.session if snapshot else None

    def access_token(self) -> str | None:
        snapshot = self._current
        return snapshot.tokens.access_token if snapshot else None

    def replace(self, stored: StoredSession | None) -> None:
        """Swap in a new snapshot and persist it (or clear storage)."""
        if stored is None:
            self.store.clear()
        else:
            self.store.save(stored)
        self._current = stored


@dataclass(frozen=True)
class AuthResult:
    """Outcome of an authentication action."""

    success: bool
    message: str | None = None


@dataclass
class AuthService:
    """Login, logout and refresh flows around the session context."""

    api: AuthApi
    context: SessionContext
    on_sign_out: Callable[[], None] | None = None
    _restored: bool = field(default=False, init=False)

    def restore(self) -> Session | None:
        """Load the persisted session once at start-up."""
        if not self._restored:
            self._restored = True
            stored = self.context.store.load()
            if stored is not None:
                self.context.replace(stored)
        return self.context.session

    def current_session(self) -> Session | None:
        return self.context.session

    def require_session(self) -> Session:
        """Return the active session or raise ``NotAuthenticatedError``."""
        session = self.context.session
        if session is None:
            raise NotAuthenticatedError("Please sign in to continue")
        return session

    async def login(self, username: str, password: str) -> AuthResult:
        """Authenticate and store the returned tokens and user."""
        try:
            response = await self.api.login(username, password)
        except BackendError as exc:
            logger.warning("Login rejected", extra={"username": username})
            return AuthResult(
                success=False, message=exc.message or "Login failed. Please try again."
            )
        except Exception:
            logger.exception("Login error")
            return AuthResult(success=False, message="Login failed. Please try again.")

        if not response.get("success"):
            return AuthResult(success=False, message=_message(response))
        data = response.get("data")
        if not isinstance(data, dict) or not data.get("accessToken"):
            logger.error("Login response missing tokens")
            return AuthResult(success=False, message="Login failed. Please try again.")
        user = data.get("user")
        session = _parse_user(user)
        if session is None or not isinstance(user, dict):
            return AuthResult(success=False, message="Login failed. Please try again.")
        self.context.replace(
            StoredSession(
                tokens=TokenPair(
                    access_token=str(data["accessToken"]),
                    refresh_token=data.get("refreshToken"),
                ),
                session=session,
                user_payload=user,
            )
        )
        logger.info("Operator signed in", extra={"username": username})
        return AuthResult(success=True)

    async def logout(self) -> None:
        """Invalidate the token on the backend if possible; always clear locally."""
        try:
            if self.context.current is not None:
                await self.api.logout()
        except Exception:
            logger.exception("Logout API error")
        finally:
            self.context.replace(None)
            if self.on_sign_out is not None:
                self.on_sign_out()

    async def refresh_user(self) -> AuthResult:
        """Re-read the current user; any failure signs the operator out."""
        current = self.context.current
        if current is None:
            return AuthResult(success=False)
        try:
            response = await self.api.get_current_user()
        except Exception:
            logger.exception("Error refreshing user")
            await self.logout()
            return AuthResult(success=False)

        user = response.get("data")
        if not response.get("success") or not isinstance(user, dict):
            return AuthResult(success=False, message=_message(response))
        session = _parse_user(user)
        if session is None:
            await self.logout()
            return AuthResult(success=False)
        self.context.replace(
            StoredSession(
                tokens=current.tokens,
                session=session,
                user_payload=user,
            )
        )
        return AuthResult(success=True)

    async def refresh_tokens(self) -> AuthResult:
        """Exchange the refresh token; any failure signs the operator out."""
        current = self.context.current
        if current is None or not current.tokens.refresh_token:
            await self.logout()
            return AuthResult(success=False, message="Session expired")
        try:
            response = await self.api.refresh_token(current.tokens.refresh_token)
            data = response.get("data")
            if not response.get("success") or not isinstance(data, dict):
                raise BackendError(401, _message(response) or "Session expired")
            access_token = data.get("accessToken")
            if not access_token:
                raise BackendError(401, "Session expired")
        except Exception:
            logger.exception("Token refresh failed")
            await self.logout()
            return AuthResult(success=False, message="Session expired")

        self.context.replace(
            StoredSession(
                tokens=TokenPair(
                    access_token=str(access_token),
                    refresh_token=data.get("refreshToken")
                    or current.tokens.refresh_token,
                ),
                session=current.session,
                user_payload=current.user_payload,
            )
        )
        return AuthResult(success=True)

    async def change_password(
        self, current_password: str, new_password: str
    ) -> AuthResult:
        self.require_session()
        try:
            response = await self.api.change_password(current_password, new_password)
        except BackendError as exc:
            logger.warning("Change password rejected")
            return AuthResult(
                success=False,
                message=exc.message or "Failed to change password. Please try again.",
            )
        except Exception:
            logger.exception("Change password error")
            return AuthResult(
                success=False, message="Failed to change password. Please try again."
            )
        return AuthResult(
            success=bool(response.get("success")), message=_message(response)
        )


def _message(response: dict[str, object]) -> str | None:
    message = response.get("message")
    return str(message) if message else None


def _parse_user(user: object) -> Session | None:
    if not isinstance(user, dict):
        return None
    try:
        return session_from_payload(user)
    except (KeyError, TypeError, ValueError):
        logger.error("Backend returned a malformed user", exc_info=True)
        return None
