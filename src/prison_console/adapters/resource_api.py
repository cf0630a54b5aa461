"""Generic CRUD endpoints for one backend collection."""

from dataclasses import dataclass
from typing import Protocol

from prison_console.adapters.backend_client import BackendClient


class ResourceApi(Protocol):
    """Interface for a backend collection such as ``/visits``."""

    async def list(self, params: dict[str, object]) -> dict[str, object]:
        """Return one page of records plus pagination metadata."""

    async def get(self, record_id: int) -> dict[str, object]:
        """Return a single record."""

    async def create(self, payload: dict[str, object]) -> dict[str, object]:
        """Create a record."""

    async def update(
        self, record_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        """Update a record."""

    async def delete(self, record_id: int) -> dict[str, object]:
        """Soft-delete or deactivate a record."""

    async def action(
        self,
        record_id: int,
        name: str,
        payload: dict[str, object] | None = None,
        method: str = "POST",
    ) -> dict[str, object]:
        """Invoke a record-level action such as ``approve-payment``."""

    async def collection_action(
        self, name: str, params: dict[str, object] | None = None
    ) -> dict[str, object]:
        """Fetch a collection-level endpoint such as ``stats``."""


@dataclass
class HttpxResourceApi(ResourceApi):
    """Resource API bound to a collection path."""

    client: BackendClient
    path: str

    async def list(self, params: dict[str, object]) -> dict[str, object]:
        return await self.client.request("GET", self.path, params=params)

    async def get(self, record_id: int) -> dict[str, object]:
        return await self.client.request("GET", f"{self.path}/{record_id}")

    async def create(self, payload: dict[str, object]) -> dict[str, object]:
        return await self.client.request("POST", self.path, json=payload)

    async def update(
        self, record_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        return await self.client.request(
            "PUT", f"{self.path}/{record_id}", json=payload
        )

    async def delete(self, record_id: int) -> dict[str, object]:
        return await self.client.request("DELETE", f"{self.path}/{record_id}")

    async def action(
        self,
        record_id: int,
        name: str,
        payload: dict[str, object] | None = None,
        method: str = "POST",
    ) -> dict[str, object]:
        return await self.client.request(
            method, f"{self.path}/{record_id}/{name}", json=payload
        )

    async def collection_action(
        self, name: str, params: dict[str, object] | None = None
    ) -> dict[str, object]:
        return await self.client.request("GET", f"{self.path}/{name}", params=params)
