"""Shared test fixtures."""

import asyncio
from collections import Counter
from dataclasses import dataclass, field

import pytest

from prison_console.adapters.auth_api import AuthApi
from prison_console.adapters.prisoner_api import PrisonerApi
from prison_console.adapters.resource_api import ResourceApi
from prison_console.adapters.session_store import SessionStore
from prison_console.config import Settings
from prison_console.containers import AppContainer
from prison_console.domain.session import (
    StoredSession,
    TokenPair,
    session_from_payload,
)
from prison_console.errors import BackendError
from prison_console.services.auth import AuthService, SessionContext
from prison_console.services.console import ConsoleSession, ConsoleSessionRegistry
from prison_console.services.notifications import NotificationCenter
from prison_console.services.records import RESOURCES, build_record_services
from prison_console.services.wizard import WizardRegistry


def user_payload(
    role: str | None = "Officer",
    permissions: list[str] | None = None,
    prison_id: int | None = 1,
    user_id: int = 7,
) -> dict[str, object]:
    """Build a backend user object."""
    payload: dict[str, object] = {
        "userId": user_id,
        "fullName": "Nimal Perera",
        "username": "nimal",
        "permissions": permissions or [],
    }
    if role is not None:
        payload["role"] = {"roleName": role}
    if prison_id is not None:
        payload["prison"] = {"prisonId": prison_id, "prisonName": "Welikada"}
    return payload


def stored_session(
    role: str | None = "Officer",
    permissions: list[str] | None = None,
    prison_id: int | None = 1,
) -> StoredSession:
    user = user_payload(role, permissions, prison_id)
    return StoredSession(
        tokens=TokenPair(access_token="access-1", refresh_token="refresh-1"),
        session=session_from_payload(user),
        user_payload=user,
    )


@dataclass
class InMemorySessionStore(SessionStore):
    """Session store kept in memory."""

    stored: StoredSession | None = None
    saves: int = 0

    def load(self) -> StoredSession | None:
        return self.stored

    def save(self, stored: StoredSession) -> None:
        self.saves += 1
        self.stored = stored

    def clear(self) -> None:
        self.stored = None


@dataclass
class FakeAuthApi(AuthApi):
    """Auth API accepting a fixed set of credentials."""

    users: dict[str, tuple[str, dict[str, object]]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    fail_refresh: bool = False
    fail_me: bool = False
    fail_logout: bool = False
    current_user: dict[str, object] | None = None

    async def login(self, username: str, password: str) -> dict[str, object]:
        self.calls.append("login")
        entry = self.users.get(username)
        if entry is None or entry[0] != password:
            raise BackendError(
                401,
                "Invalid username or password",
                {"success": False, "message": "Invalid username or password"},
            )
        self.current_user = entry[1]
        return {
            "success": True,
            "data": {
                "user": entry[1],
                "accessToken": f"access-{username}",
                "refreshToken": f"refresh-{username}",
            },
        }

    async def logout(self) -> dict[str, object]:
        self.calls.append("logout")
        if self.fail_logout:
            raise BackendError(500, "Logout failed")
        return {"success": True}

    async def get_current_user(self) -> dict[str, object]:
        self.calls.append("me")
        if self.fail_me or self.current_user is None:
            raise BackendError(401, "Token expired")
        return {"success": True, "data": self.current_user}

    async def change_password(
        self, current_password: str, new_password: str
    ) -> dict[str, object]:
        self.calls.append("change_password")
        if current_password != "old-secret":
            raise BackendError(400, "Current password is incorrect")
        return {"success": True, "message": "Password changed successfully"}

    async def refresh_token(self, refresh_token: str) -> dict[str, object]:
        self.calls.append("refresh")
        if self.fail_refresh:
            raise BackendError(401, "Invalid refresh token")
        return {"success": True, "data": {"accessToken": "access-2"}}


@dataclass
class InMemoryResourceApi(ResourceApi):
    """One backend collection held in a dict."""

    records: dict[int, dict[str, object]] = field(default_factory=dict)
    calls: list[tuple[str, object]] = field(default_factory=list)
    summary: dict[str, object] | None = None
    fail_with: Exception | None = None
    next_id: int = 1

    async def list(self, params: dict[str, object]) -> dict[str, object]:
        self._record("list", params)
        records = list(self.records.values())
        body: dict[str, object] = {
            "success": True,
            "data": records,
            "pagination": {
                "page": params.get("page", 1),
                "pages": 1 if records else 0,
                "total": len(records),
            },
        }
        if self.summary is not None:
            body["summary"] = self.summary
        return body

    async def get(self, record_id: int) -> dict[str, object]:
        self._record("get", record_id)
        record = self.records.get(record_id)
        if record is None:
            raise BackendError(404, "Record not found")
        return {"success": True, "data": record}

    async def create(self, payload: dict[str, object]) -> dict[str, object]:
        self._record("create", payload)
        record = {"id": self.next_id, **payload}
        self.records[self.next_id] = record
        self.next_id += 1
        return {"success": True, "data": record}

    async def update(
        self, record_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        self._record("update", (record_id, payload))
        if record_id not in self.records:
            raise BackendError(404, "Record not found")
        self.records[record_id] = {"id": record_id, **payload}
        return {"success": True, "data": self.records[record_id]}

    async def delete(self, record_id: int) -> dict[str, object]:
        self._record("delete", record_id)
        self.records.pop(record_id, None)
        return {"success": True}

    async def action(
        self,
        record_id: int,
        name: str,
        payload: dict[str, object] | None = None,
        method: str = "POST",
    ) -> dict[str, object]:
        self._record("action", (record_id, name, payload, method))
        return {"success": True, "data": {"id": record_id, "action": name}}

    async def collection_action(
        self, name: str, params: dict[str, object] | None = None
    ) -> dict[str, object]:
        self._record("collection_action", (name, params))
        return {"success": True, "data": {"name": name, "total": len(self.records)}}

    def _record(self, operation: str, argument: object) -> None:
        self.calls.append((operation, argument))
        if self.fail_with is not None:
            raise self.fail_with


@dataclass
class FakePrisonerApi(PrisonerApi):
    """Prisoner backend with per-call failure injection.

    ``failures[("upload_photo", 2)]`` makes the second upload raise.
    """

    prisoners: dict[int, dict[str, object]] = field(default_factory=dict)
    failures: dict[tuple[str, int], Exception] = field(default_factory=dict)
    call_counts: Counter = field(default_factory=Counter)
    calls: list[tuple[str, object]] = field(default_factory=list)
    next_id: int = 100
    upload_delay: float = 0.0

    async def get_prisoner(self, prisoner_id: int) -> dict[str, object]:
        self._enter("get_prisoner", prisoner_id)
        prisoner = self.prisoners.get(prisoner_id)
        if prisoner is None:
            raise BackendError(404, "Prisoner not found")
        return {"success": True, "data": prisoner}

    async def create_prisoner(self, payload: dict[str, object]) -> dict[str, object]:
        self._enter("create_prisoner", payload)
        prisoner_id = self._new_id()
        self.prisoners[prisoner_id] = {
            "prisonerId": prisoner_id,
            **backend_prisoner(payload),
            "photos": [],
            "bodyMarks": [],
            "familyDetails": [],
        }
        return {"success": True, "data": {"prisonerId": prisoner_id}}

    async def update_prisoner(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        self._enter("update_prisoner", (prisoner_id, payload))
        self._prisoner(prisoner_id).update(backend_prisoner(payload))
        return {"success": True, "data": {"prisonerId": prisoner_id}}

    async def upload_photo(  # noqa: PLR0913
        self,
        prisoner_id: int,
        filename: str,
        content: bytes,
        content_type: str,
        photo_type: str,
    ) -> dict[str, object]:
        self._enter("upload_photo", (prisoner_id, filename, photo_type))
        if self.upload_delay:
            await asyncio.sleep(self.upload_delay)
        photo_id = self._new_id()
        self._prisoner(prisoner_id)["photos"].append(
            {
                "photoId": photo_id,
                "photoType": photo_type,
                "photoUrl": f"/uploads/{filename}",
            }
        )
        return {"success": True, "data": {"photoId": photo_id}}

    async def delete_photo(self, prisoner_id: int, photo_id: int) -> dict[str, object]:
        self._enter("delete_photo", (prisoner_id, photo_id))
        self._remove(prisoner_id, "photos", "photoId", photo_id)
        return {"success": True}

    async def add_body_mark(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        self._enter("add_body_mark", (prisoner_id, payload))
        mark_id = self._new_id()
        self._prisoner(prisoner_id)["bodyMarks"].append(
            {
                "markId": mark_id,
                "description": payload["mark_description"],
                "location": payload["mark_location"],
            }
        )
        return {"success": True, "data": {"markId": mark_id}}

    async def update_body_mark(
        self, prisoner_id: int, mark_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        self._enter("update_body_mark", (prisoner_id, mark_id, payload))
        for mark in self._prisoner(prisoner_id)["bodyMarks"]:
            if mark["markId"] == mark_id:
                mark["description"] = payload["mark_description"]
                mark["location"] = payload["mark_location"]
        return {"success": True}

    async def delete_body_mark(
        self, prisoner_id: int, mark_id: int
    ) -> dict[str, object]:
        self._enter("delete_body_mark", (prisoner_id, mark_id))
        self._remove(prisoner_id, "bodyMarks", "markId", mark_id)
        return {"success": True}

    async def add_family_member(
        self, prisoner_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        self._enter("add_family_member", (prisoner_id, payload))
        family_id = self._new_id()
        self._prisoner(prisoner_id)["familyDetails"].append(
            {
                "familyId": family_id,
                "memberName": payload["family_member_name"],
                "relationship": payload["relationship"],
                "contactNumber": payload["contact_number"],
                "address": payload["address"],
                "nic": payload["nic"],
                "emergencyContact": payload.get("emergency_contact", False),
            }
        )
        return {"success": True, "data": {"familyId": family_id}}

    async def update_family_member(
        self, prisoner_id: int, family_id: int, payload: dict[str, object]
    ) -> dict[str, object]:
        self._enter("update_family_member", (prisoner_id, family_id, payload))
        for member in self._prisoner(prisoner_id)["familyDetails"]:
            if member["familyId"] == family_id:
                member["memberName"] = payload["family_member_name"]
        return {"success": True}

    async def delete_family_member(
        self, prisoner_id: int, family_id: int
    ) -> dict[str, object]:
        self._enter("delete_family_member", (prisoner_id, family_id))
        self._remove(prisoner_id, "familyDetails", "familyId", family_id)
        return {"success": True}

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]

    def _enter(self, operation: str, argument: object) -> None:
        self.call_counts[operation] += 1
        self.calls.append((operation, argument))
        failure = self.failures.get((operation, self.call_counts[operation]))
        if failure is not None:
            raise failure

    def _new_id(self) -> int:
        self.next_id += 1
        return self.next_id

    def _prisoner(self, prisoner_id: int) -> dict:
        prisoner = self.prisoners.get(prisoner_id)
        if prisoner is None:
            raise BackendError(404, "Prisoner not found")
        return prisoner

    def _remove(self, prisoner_id: int, key: str, id_key: str, remote_id: int) -> None:
        prisoner = self._prisoner(prisoner_id)
        prisoner[key] = [item for item in prisoner[key] if item[id_key] != remote_id]


_BACKEND_FIELDS = {
    "full_name": "fullName",
    "case_number": "caseNumber",
    "admission_date": "admissionDate",
    "expected_release_date": "expectedReleaseDate",
    "cell_number": "cellNumber",
    "social_status": "socialStatus",
}


def backend_prisoner(payload: dict[str, object]) -> dict[str, object]:
    """Translate a basic-details payload into the backend's prisoner shape."""
    record = {
        _BACKEND_FIELDS.get(name, name): value
        for name, value in payload.items()
        if name != "prison_id"
    }
    if "prison_id" in payload:
        record["prison"] = {"prisonId": payload["prison_id"], "prisonName": "Welikada"}
    return record


def seeded_prisoner(
    prisoner_id: int = 42, prison_id: int | None = 1
) -> dict[str, object]:
    """A persisted prisoner with one photo, two marks and one relative."""
    return {
        "prisonerId": prisoner_id,
        "fullName": "Sunil Silva",
        "nic": "851234567V",
        "caseNumber": "HC/123/2024",
        "gender": "Male",
        "birthday": "1985-04-12T00:00:00.000Z",
        "nationality": "Sri Lankan",
        "admissionDate": "2024-01-10",
        "expectedReleaseDate": "2030-01-10",
        "prison": (
            {"prisonId": prison_id, "prisonName": "Welikada"}
            if prison_id is not None
            else None
        ),
        "cellNumber": "B-12",
        "socialStatus": "Married",
        "photos": [
            {"photoId": 1, "photoType": "Profile", "photoUrl": "/uploads/p1.jpg"}
        ],
        "bodyMarks": [
            {"markId": 11, "description": "Scar on chin", "location": "Face"},
            {"markId": 12, "description": "Anchor tattoo", "location": "Left arm"},
        ],
        "familyDetails": [
            {
                "familyId": 21,
                "memberName": "Kamala Silva",
                "relationship": "Mother",
                "contactNumber": "0771234567",
                "address": "12 Temple Road, Kandy",
                "nic": "601234567V",
                "emergencyContact": True,
            }
        ],
    }


def build_console(
    token: str,
    auth_api: AuthApi,
    prisoner_api: PrisonerApi,
    resource_apis: dict[str, InMemoryResourceApi],
    store: SessionStore,
) -> ConsoleSession:
    """Wire one console session over fakes, as the container does."""
    notifications = NotificationCenter(environment="test")
    wizards = WizardRegistry()
    return ConsoleSession(
        token=token,
        auth_service=AuthService(
            api=auth_api,
            context=SessionContext(store=store),
            on_sign_out=wizards.clear,
        ),
        notifications=notifications,
        record_services=build_record_services(resource_apis, notifications),
        prisoner_api=prisoner_api,
        wizards=wizards,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_base_url="https://backend.test/api",
        session_dir=str(tmp_path / "sessions"),
        environment="test",
    )


@pytest.fixture
def notifications() -> NotificationCenter:
    return NotificationCenter(environment="test")


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def auth_api() -> FakeAuthApi:
    return FakeAuthApi(
        users={
            "nimal": (
                "secret",
                user_payload(permissions=["view_prisoners", "manage_prisoners"]),
            )
        }
    )


@pytest.fixture
def prisoner_api() -> FakePrisonerApi:
    return FakePrisonerApi()


@pytest.fixture
def resource_apis() -> dict[str, InMemoryResourceApi]:
    return {name: InMemoryResourceApi() for name in RESOURCES}


@pytest.fixture
def console(
    auth_api: FakeAuthApi,
    prisoner_api: FakePrisonerApi,
    resource_apis: dict[str, InMemoryResourceApi],
    session_store: InMemorySessionStore,
) -> ConsoleSession:
    return build_console(
        "console-token", auth_api, prisoner_api, resource_apis, session_store
    )


@pytest.fixture
def container(
    settings: Settings,
    auth_api: FakeAuthApi,
    prisoner_api: FakePrisonerApi,
    resource_apis: dict[str, InMemoryResourceApi],
) -> AppContainer:
    stores: dict[str, InMemorySessionStore] = {}

    def open_console(token: str) -> ConsoleSession:
        store = stores.setdefault(token, InMemorySessionStore())
        return build_console(token, auth_api, prisoner_api, resource_apis, store)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        sessions=ConsoleSessionRegistry(factory=open_console),
        close_resources=close_resources,
    )
