"""Prisoner endpoints, including the nested photo, mark and family collections."""

from dataclasses import dataclass
from typing import Protocol

from prison_console.adapters.backend_client import BackendClient


class PrisonerApi(Protocol):
    """Interface for prisoner registration calls."""

    async def get_prisoner(self, prisoner_id: int) -> dict[str, object]:
        """Return a prisoner with photos, body marks and family details."""

    async def create_prisoner(self, payload: dict[str, object]) -> dict[str, object]:
        """Create a prisoner from basic details."""

    async def update_prisoner(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        """Update a prisoner's basic details."""

    async def upload_photo(  # noqa: PLR0913
        self,
        prisoner_id: int,
        filename: str,
        content: bytes,
        content_type: str,
        photo_type: str,
    ) -> dict[str, object]:
        """Upload one photo."""

    async def delete_photo(self, prisoner_id: int, photo_id: int) -> dict[str, object]:
        """Delete one photo."""

    async def add_body_mark(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        """Add a body mark."""

    async def update_body_mark(
        self, prisoner_id: int, mark_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        """Update a body mark."""

    async def delete_body_mark(
        self, prisoner_id: int, mark_id: int
    ) -> dict[str, object]:
        """Delete a body mark."""

    async def add_family_member(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        """Add a family member."""

    async def update_family_member(
        self, prisoner_id: int, family_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        """Update a family member."""

    async def delete_family_member(
        self, prisoner_id: int, family_id: int
    ) -> dict[str, object]:
        """Delete a family member."""


@dataclass
class HttpxPrisonerApi(PrisonerApi):
    """Prisoner API over the shared backend client."""

    client: BackendClient

    async def get_prisoner(self, prisoner_id: int) -> dict[str, object]:
        return await self.client.request("GET", f"/prisoners/{prisoner_id}")

    async def create_prisoner(self, payload: dict[str, object]) -> dict[str, object]:
        return await self.client.request("POST", "/prisoners", json=payload)

    async def update_prisoner(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        return await self.client.request(
            "PUT", f"/prisoners/{prisoner_id}", json=payload
        )

    async def upload_photo(  # noqa: PLR0913
        self,
        prisoner_id: int,
        filename: str,
        content: bytes,
        content_type: str,
        photo_type: str,
    ) -> dict[str, object]:
        return await self.client.request(
            "POST",
            f"/prisoners/{prisoner_id}/photos",
            data={"photo_type": photo_type},
            files={"photo": (filename, content, content_type)},
        )

    async def delete_photo(self, prisoner_id: int, photo_id: int) -> dict[str, object]:
        return await self.client.request(
            "DELETE", f"/prisoners/{prisoner_id}/photos/{photo_id}"
        )

    async def add_body_mark(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        return await self.client.request(
            "POST", f"/prisoners/{prisoner_id}/body-marks", json=payload
        )

    async def update_body_mark(
        self, prisoner_id: int, mark_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        return await self.client.request(
            "PUT", f"/prisoners/{prisoner_id}/body-marks/{mark_id}", json=payload
        )

    async def delete_body_mark(
        self, prisoner_id: int, mark_id: int
    ) -> dict[str, object]:
        return await self.client.request(
            "DELETE", f"/prisoners/{prisoner_id}/body-marks/{mark_id}"
        )

    async def add_family_member(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        return await self.client.request(
            "POST", f"/prisoners/{prisoner_id}/family", json=payload
        )

    async def update_family_member(
        self, prisoner_id: int, family_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        return await self.client.request(
            "PUT", f"/prisoners/{prisoner_id}/family/{family_id}", json=payload
        )

    async def delete_family_member(
        self, prisoner_id: int, family_id: int
    ) -> dict[str, object]:
        return await self.client.request(
            "DELETE", f"/prisoners/{prisoner_id}/family/{family_id}"
        )
