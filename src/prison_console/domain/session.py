"""Domain models for the operator session."""

from dataclasses import dataclass
from enum import StrEnum


class RoleName(StrEnum):
    """Role names issued by the backend."""

    SUPER_ADMIN = "Super Admin"
    PRISON_ADMIN = "Prison Admin"
    OFFICER = "Officer"
    RECORDS_KEEPER = "Records Keeper"
    VISITOR_MANAGER = "Visitor Manager"


class Permission(StrEnum):
    """Permission tokens issued by the backend."""

    MANAGE_USERS = "manage_users"
    VIEW_USERS = "view_users"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"

    MANAGE_PRISONS = "manage_prisons"
    VIEW_PRISONS = "view_prisons"

    MANAGE_PRISONERS = "manage_prisoners"
    VIEW_PRISONERS = "view_prisoners"
    REGISTER_PRISONER = "register_prisoner"
    UPDATE_PRISONER = "update_prisoner"
    DELETE_PRISONER = "delete_prisoner"

    MANAGE_WORK_RECORDS = "manage_work_records"
    VIEW_WORK_RECORDS = "view_work_records"
    RECORD_WORK = "record_work"
    APPROVE_PAYMENT = "approve_payment"

    MANAGE_BEHAVIOUR = "manage_behaviour"
    VIEW_BEHAVIOUR = "view_behaviour"
    RECORD_BEHAVIOUR = "record_behaviour"
    ADJUST_SENTENCE = "adjust_sentence"

    MANAGE_VISITORS = "manage_visitors"
    VIEW_VISITORS = "view_visitors"
    SCHEDULE_VISIT = "schedule_visit"
    APPROVE_VISIT = "approve_visit"

    GENERATE_REPORTS = "generate_reports"
    VIEW_REPORTS = "view_reports"


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions."""

    name: str
    permissions: tuple[str, ...] = ()


@dataclass(frozen=True)
class Facility:
    """The prison a staff member is assigned to."""

    id: int
    name: str | None = None


@dataclass(frozen=True)
class Session:
    """Authenticated operator, replaced as a unit on every change."""

    user_id: int
    display_name: str
    username: str | None
    role: Role | None
    facility: Facility | None = None


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh tokens issued at login."""

    access_token: str
    refresh_token: str | None = None


@dataclass(frozen=True)
class StoredSession:
    """Session snapshot persisted between console restarts."""

    tokens: TokenPair
    session: Session
    user_payload: dict[str, object]


def session_from_payload(payload: dict[str, object]) -> Session:
    """Build a session from the backend user object."""
    raw_role = payload.get("role")
    role: Role | None = None
    if isinstance(raw_role, dict) and raw_role.get("roleName"):
        permissions = payload.get("permissions")
        if permissions is None:
            permissions = raw_role.get("permissions")
        role = Role(
            name=str(raw_role["roleName"]),
            permissions=_permission_tuple(permissions),
        )

    raw_prison = payload.get("prison")
    facility: Facility | None = None
    if isinstance(raw_prison, dict) and raw_prison.get("prisonId") is not None:
        facility = Facility(
            id=int(raw_prison["prisonId"]),
            name=raw_prison.get("prisonName"),
        )

    username = payload.get("username")
    return Session(
        user_id=int(payload["userId"]),
        display_name=str(payload.get("fullName") or username or ""),
        username=str(username) if username is not None else None,
        role=role,
        facility=facility,
    )


def _permission_tuple(raw: object) -> tuple[str, ...]:
    if not isinstance(raw, list | tuple):
        return ()
    ordered: list[str] = []
    for value in raw:
        token = str(value)
        if token not in ordered:
            ordered.append(token)
    return tuple(ordered)
