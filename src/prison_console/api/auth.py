"""Sign-in, sign-out and session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from prison_console.api.guards import (
    SESSION_COOKIE,
    console_token,
    current_console,
    require_console,
    require_session,
)
from prison_console.domain.session import Session
from prison_console.services.console import ConsoleSession
from prison_console.services.permissions import is_prison_admin, is_super_admin

if TYPE_CHECKING:
    from prison_console.containers import AppContainer

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self) -> ChangePasswordRequest:
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


def serialize_session(session: Session) -> dict[str, object]:
    """Return the operator profile shown by the console."""
    role = session.role
    facility = session.facility
    return {
        "userId": session.user_id,
        "fullName": session.display_name,
        "username": session.username,
        "role": role.name if role else None,
        "permissions": list(role.permissions) if role else [],
        "prison": (
            {"prisonId": facility.id, "prisonName": facility.name}
            if facility
            else None
        ),
        "isSuperAdmin": is_super_admin(session),
        "isPrisonAdmin": is_prison_admin(session),
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    previous_token: str | None = Depends(console_token),
) -> JSONResponse:
    """Sign the operator in and hand out a fresh console credential."""
    container: AppContainer = request.app.state.container
    console = container.sessions.open()
    result = await console.auth_service.login(body.username, body.password)
    session = console.auth_service.current_session()
    if not result.success or session is None:
        container.sessions.discard(console.token)
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": result.message or "Login failed"},
        )
    if previous_token and previous_token != console.token:
        await container.sessions.end(previous_token)
    console.notifications.success(f"Welcome back, {session.display_name}!")
    response = JSONResponse(
        content={
            "success": True,
            "data": serialize_session(session),
            "token": console.token,
        },
    )
    response.set_cookie(
        SESSION_COOKIE,
        console.token,
        httponly=True,
        samesite="lax",
        secure=container.settings.session_cookie_secure,
    )
    return response


@router.post("/logout")
async def logout(
    request: Request,
    console: ConsoleSession | None = Depends(current_console),
) -> JSONResponse:
    container: AppContainer = request.app.state.container
    if console is not None:
        await container.sessions.end(console.token)
    response = JSONResponse(
        content={"success": True, "message": "Logged out successfully"}
    )
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/me")
async def me(
    refresh: bool = False,
    console: ConsoleSession = Depends(require_console),
    session: Session = Depends(require_session),
) -> JSONResponse:
    """Return the signed-in operator, optionally re-read from the backend."""
    if refresh:
        result = await console.auth_service.refresh_user()
        refreshed = console.auth_service.current_session()
        if refreshed is None:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "message": "Session expired"},
            )
        if not result.success:
            console.notifications.error(result.message or "Failed to refresh user")
        session = refreshed
    return JSONResponse(content={"success": True, "data": serialize_session(session)})


@router.post("/refresh", dependencies=[Depends(require_session)])
async def refresh(console: ConsoleSession = Depends(require_console)) -> JSONResponse:
    """Exchange the refresh token; failure signs the operator out."""
    result = await console.auth_service.refresh_tokens()
    if not result.success:
        console.notifications.error(result.message or "Session expired")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": result.message},
        )
    return JSONResponse(content={"success": True, "message": "Token refreshed"})


@router.post("/change-password", dependencies=[Depends(require_session)])
async def change_password(
    body: ChangePasswordRequest,
    console: ConsoleSession = Depends(require_console),
) -> JSONResponse:
    result = await console.auth_service.change_password(
        body.current_password, body.new_password
    )
    if not result.success:
        message = result.message or "Failed to change password"
        console.notifications.error(message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": message},
        )
    message = result.message or "Password changed successfully"
    console.notifications.success(message)
    return JSONResponse(content={"success": True, "message": message})
