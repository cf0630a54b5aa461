"""Exception handlers translating console errors into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from prison_console.domain.forms import validation_messages
from prison_console.errors import (
    BackendError,
    BackendUnavailableError,
    NotAuthenticatedError,
    PermissionDeniedError,
    WizardStateError,
)

logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


async def _validation_error(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    errors = validation_messages(list(exc.errors()))
    return _failure(
        status.HTTP_400_BAD_REQUEST, "Please correct the invalid fields", errors=errors
    )


async def _not_authenticated(
    request: Request, exc: NotAuthenticatedError
) -> JSONResponse:
    return _failure(status.HTTP_401_UNAUTHORIZED, str(exc) or "Not signed in")


async def _permission_denied(
    request: Request, exc: PermissionDeniedError
) -> JSONResponse:
    logger.info("Permission denied", extra={"path": request.url.path})
    return _failure(status.HTTP_403_FORBIDDEN, str(exc) or "Access denied")


async def _backend_error(request: Request, exc: BackendError) -> JSONResponse:
    return _failure(exc.status_code, exc.message or "Request failed")


async def _backend_unavailable(
    request: Request, exc: BackendUnavailableError
) -> JSONResponse:
    return _failure(status.HTTP_502_BAD_GATEWAY, str(exc) or "Backend unavailable")


async def _wizard_state(request: Request, exc: WizardStateError) -> JSONResponse:
    return _failure(status.HTTP_409_CONFLICT, str(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotAuthenticatedError, _not_authenticated)
    app.add_exception_handler(PermissionDeniedError, _permission_denied)
    app.add_exception_handler(BackendError, _backend_error)
    app.add_exception_handler(BackendUnavailableError, _backend_unavailable)
    app.add_exception_handler(WizardStateError, _wizard_state)
