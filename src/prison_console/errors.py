"""Error types shared across the console."""


class BackendError(Exception):
    """The backend answered with an HTTP error response."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        payload: dict[str, object] | None = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}
        super().__init__(message or f"Backend returned HTTP {status_code}")


class BackendUnavailableError(Exception):
    """The backend could not be reached."""


class NotAuthenticatedError(Exception):
    """No operator session is active."""


class PermissionDeniedError(Exception):
    """The session lacks the permission, role or facility access required."""


class WizardStateError(Exception):
    """A wizard operation was invoked from a step that does not allow it."""


def failure_message(exc: BaseException, fallback: str, environment: str) -> str:
    """Return the user-facing text for a caught failure."""
    if isinstance(exc, BackendError) and exc.message:
        return exc.message
    if isinstance(exc, PermissionDeniedError | WizardStateError) and str(exc):
        return str(exc)
    if environment == "local":
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail:
            return f"{fallback} (debug: {detail})"
    return fallback
