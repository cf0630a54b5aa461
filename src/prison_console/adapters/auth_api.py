"""Authentication endpoints of the backend."""

from dataclasses import dataclass
from typing import Protocol

from prison_console.adapters.backend_client import BackendClient


class AuthApi(Protocol):
    """Interface for authentication calls."""

    async def login(self, username: str, password: str) -> dict[str, object]:
        """Exchange credentials for tokens and the user object."""

    async def logout(self) -> dict[str, object]:
        """Invalidate the current access token on the backend."""

    async def get_current_user(self) -> dict[str, object]:
        """Return the profile of the authenticated user."""

    async def change_password(
        self, current_password: str, new_password: str
    ) -> dict[str, object]:
        """Change the authenticated user's password."""

    async def refresh_token(self, refresh_token: str) -> dict[str, object]:
        """Exchange a refresh token for a new token pair."""


@dataclass
class HttpxAuthApi(AuthApi):
    """Auth endpoints over the shared backend client."""

    client: BackendClient

    async def login(self, username: str, password: str) -> dict[str, object]:
        return await self.client.request(
            "POST", "/auth/login", json={"username": username, "password": password}
        )

    async def logout(self) -> dict[str, object]:
        return await self.client.request("POST", "/auth/logout")

    async def get_current_user(self) -> dict[str, object]:
        return await self.client.request("GET", "/auth/me")

    async def change_password(
        self, current_password: str, new_password: str
    ) -> dict[str, object]:
        return await self.client.request(
            "POST",
            "/auth/change-password",
            json={"current_password": current_password, "new_password": new_password},
        )

    async def refresh_token(self, refresh_token: str) -> dict[str, object]:
        return await self.client.request(
            "POST", "/auth/refresh", json={"refreshToken": refresh_token}
        )
