"""Request dependencies that resolve the console session and gate routes."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING

from fastapi import Cookie, Depends, Header, Request

from prison_console.domain.session import Session
from prison_console.errors import NotAuthenticatedError, PermissionDeniedError
from prison_console.services.console import ConsoleSession
from prison_console.services.permissions import is_granted

if TYPE_CHECKING:
    from prison_console.containers import AppContainer

SESSION_COOKIE = "prison_console_session"


def console_token(
    session_cookie: str | None = Cookie(default=None, alias=SESSION_COOKIE),
    authorization: str | None = Header(default=None),
) -> str | None:
    """Read the console credential from the session cookie or a bearer header."""
    if session_cookie:
        return session_cookie
    scheme, _, value = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


async def current_console(
    request: Request, token: str | None = Depends(console_token)
) -> ConsoleSession | None:
    """Return the caller's console session, if the credential is known."""
    container: AppContainer = request.app.state.container
    return container.sessions.resolve(token)


async def require_console(
    console: ConsoleSession | None = Depends(current_console),
) -> ConsoleSession:
    if console is None:
        raise NotAuthenticatedError("Please sign in to continue")
    return console


async def current_session(
    console: ConsoleSession | None = Depends(current_console),
) -> Session | None:
    """Return the operator signed in on this console, if any."""
    return console.auth_service.current_session() if console is not None else None


async def require_session(
    session: Session | None = Depends(current_session),
) -> Session:
    """Reject the request when nobody is signed in."""
    if session is None:
        raise NotAuthenticatedError("Please sign in to continue")
    return session


def require_permissions(
    *permissions: str,
    roles: Iterable[str] = (),
    require_all: bool = False,
) -> Callable[[Session], Awaitable[Session]]:
    """Build a dependency that admits sessions granted ``permissions``."""
    required_roles = tuple(roles)

    async def dependency(session: Session = Depends(require_session)) -> Session:
        if not is_granted(
            session,
            permissions=permissions,
            roles=required_roles,
            require_all=require_all,
        ):
            raise PermissionDeniedError(
                "You do not have permission to access this page"
            )
        return session

    return dependency
