"""HTTP client for the prison management REST backend."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Protocol

import httpx

from prison_console.errors import BackendError, BackendUnavailableError

logger = logging.getLogger(__name__)

FileField = tuple[str, bytes, str]


class BackendClient(Protocol):
    """Interface for raw backend requests."""

    async def request(  # noqa: PLR0913
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, object] | None = None,
        json: Mapping[str, object] | None = None,
        data: Mapping[str, str] | None = None,
        files: Mapping[str, FileField] | None = None,
    ) -> dict[str, object]:
        """Send a request and return the decoded response envelope."""


def _no_token() -> str | None:
    return None


@dataclass
class HttpxBackendClient(BackendClient):
    """HTTPX-backed backend client that attaches the operator's bearer token."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0
    token_provider: Callable[[], str | None] = field(default=_no_token)

    @classmethod
    def create(
        cls,
        base_url: str,
        timeout: float = 15.0,
        token_provider: Callable[[], str | None] = _no_token,
    ) -> "HttpxBackendClient":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
            token_provider=token_provider,
        )

    def bind(self, token_provider: Callable[[], str | None]) -> "HttpxBackendClient":
        """Return a client sharing this connection pool but another token source."""
        return replace(self, token_provider=token_provider)

    async def request(  # noqa: PLR0913
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, object] | None = None,
        json: Mapping[str, object] | None = None,
        data: Mapping[str, str] | None = None,
        files: Mapping[str, FileField] | None = None,
    ) -> dict[str, object]:
        """Send a request; raise ``BackendError`` on HTTP error responses."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self.http_client.request(
                method,
                url,
                params=_clean_params(params),
                json=json,
                data=data,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            logger.warning("Backend unreachable", extra={"path": path})
            raise BackendUnavailableError("The server could not be reached") from exc

        body = _decode(response)
        if response.is_error:
            message = body.get("message")
            raise BackendError(
                status_code=response.status_code,
                message=str(message) if message else None,
                payload=body,
            )
        return body

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _clean_params(params: Mapping[str, object] | None) -> dict[str, object] | None:
    if params is None:
        return None
    return {key: value for key, value in params.items() if value is not None}


def _decode(response: httpx.Response) -> dict[str, object]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text} if response.is_error else {}
    if isinstance(body, dict):
        return body
    return {"data": body}
