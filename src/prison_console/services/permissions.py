"""Permission resolver: pure checks over the operator session."""

from collections.abc import Iterable, Mapping

from prison_console.domain.session import Permission, RoleName, Session


def has_permission(session: Session | None, permission: str) -> bool:
    """Return true when the session's role grants ``permission``."""
    if session is None or session.role is None:
        return False
    return permission in session.role.permissions


def has_any_permission(session: Session | None, permissions: Iterable[str]) -> bool:
    """Return true when at least one of ``permissions`` is granted.

    An empty list returns false; callers treat "no requirement" themselves.
    """
    if session is None or session.role is None:
        return False
    granted = session.role.permissions
    return any(permission in granted for permission in permissions)


def has_all_permissions(session: Session | None, permissions: Iterable[str]) -> bool:
    """Return true when every one of ``permissions`` is granted."""
    if session is None or session.role is None:
        return False
    granted = session.role.permissions
    return all(permission in granted for permission in permissions)


def has_role(session: Session | None, role_name: str) -> bool:
    """Return true when the session's role is ``role_name``."""
    if session is None or session.role is None:
        return False
    return session.role.name == role_name


def has_any_role(session: Session | None, role_names: Iterable[str]) -> bool:
    """Return true when the session's role is one of ``role_names``."""
    if session is None or session.role is None:
        return False
    return session.role.name in set(role_names)


def is_super_admin(session: Session | None) -> bool:
    return has_role(session, RoleName.SUPER_ADMIN)


def is_prison_admin(session: Session | None) -> bool:
    return has_role(session, RoleName.PRISON_ADMIN)


def can_access_facility(session: Session | None, facility_id: int) -> bool:
    """Super Admins reach every prison; other staff only their assigned one."""
    if is_super_admin(session):
        return True
    if session is None or session.facility is None:
        return False
    return session.facility.id == facility_id


def is_granted(
    session: Session | None,
    permissions: Iterable[str] = (),
    roles: Iterable[str] = (),
    require_all: bool = False,
) -> bool:
    """Guard check shared by navigation, routes and action gates.

    An empty requirement list means unrestricted. Both the permission and the
    role requirement must hold.
    """
    if session is None:
        return False
    required_permissions = list(permissions)
    required_roles = list(roles)
    if required_permissions:
        check = has_all_permissions if require_all else has_any_permission
        if not check(session, required_permissions):
            return False
    if required_roles and not has_any_role(session, required_roles):
        return False
    return True


# Any one listed permission unlocks the action.
ACTION_RULES: Mapping[str, Mapping[str, tuple[str, ...]]] = {
    "prisons": {
        "view": (Permission.VIEW_PRISONS, Permission.MANAGE_PRISONS),
        "create": (Permission.MANAGE_PRISONS,),
        "update": (Permission.MANAGE_PRISONS,),
        "delete": (Permission.MANAGE_PRISONS,),
        "statistics": (Permission.VIEW_PRISONS, Permission.MANAGE_PRISONS),
    },
    "users": {
        "view": (Permission.VIEW_USERS, Permission.MANAGE_USERS),
        "create": (Permission.MANAGE_USERS, Permission.CREATE_USER),
        "update": (Permission.MANAGE_USERS, Permission.UPDATE_USER),
        "delete": (Permission.MANAGE_USERS, Permission.DELETE_USER),
        "reset-password": (Permission.MANAGE_USERS, Permission.UPDATE_USER),
    },
    "prisoners": {
        "view": (Permission.VIEW_PRISONERS, Permission.MANAGE_PRISONERS),
        "create": (Permission.MANAGE_PRISONERS,),
        "update": (Permission.MANAGE_PRISONERS,),
        "delete": (Permission.MANAGE_PRISONERS,),
        "release": (Permission.MANAGE_PRISONERS,),
        "transfer": (Permission.MANAGE_PRISONERS,),
        "stats": (Permission.VIEW_PRISONERS, Permission.MANAGE_PRISONERS),
    },
    "work-records": {
        "view": (
            Permission.VIEW_WORK_RECORDS,
            Permission.MANAGE_WORK_RECORDS,
            Permission.RECORD_WORK,
        ),
        "create": (Permission.MANAGE_WORK_RECORDS, Permission.RECORD_WORK),
        "update": (Permission.MANAGE_WORK_RECORDS, Permission.RECORD_WORK),
        "delete": (Permission.MANAGE_WORK_RECORDS,),
        "approve-payment": (Permission.APPROVE_PAYMENT,),
        "stats": (Permission.VIEW_WORK_RECORDS, Permission.MANAGE_WORK_RECORDS),
    },
    "behaviour-records": {
        "view": (
            Permission.VIEW_BEHAVIOUR,
            Permission.MANAGE_BEHAVIOUR,
            Permission.RECORD_BEHAVIOUR,
        ),
        "create": (Permission.MANAGE_BEHAVIOUR, Permission.RECORD_BEHAVIOUR),
        "update": (Permission.MANAGE_BEHAVIOUR, Permission.RECORD_BEHAVIOUR),
        "delete": (Permission.MANAGE_BEHAVIOUR,),
        "approve-adjustment": (Permission.ADJUST_SENTENCE,),
        "reject-adjustment": (Permission.ADJUST_SENTENCE,),
    },
    "visitors": {
        "view": (Permission.VIEW_VISITORS, Permission.MANAGE_VISITORS),
        "create": (Permission.MANAGE_VISITORS,),
        "update": (Permission.MANAGE_VISITORS,),
        "delete": (Permission.MANAGE_VISITORS,),
        "visits": (Permission.VIEW_VISITORS, Permission.MANAGE_VISITORS),
    },
    "visits": {
        "view": (
            Permission.VIEW_VISITORS,
            Permission.MANAGE_VISITORS,
            Permission.SCHEDULE_VISIT,
        ),
        "create": (Permission.MANAGE_VISITORS, Permission.SCHEDULE_VISIT),
        "update": (Permission.MANAGE_VISITORS, Permission.SCHEDULE_VISIT),
        "delete": (Permission.MANAGE_VISITORS,),
        "status": (Permission.MANAGE_VISITORS, Permission.APPROVE_VISIT),
    },
}


def can_perform(session: Session | None, resource: str, action: str) -> bool:
    """Return true when ``action`` on ``resource`` is allowed for the session."""
    rules = ACTION_RULES.get(resource)
    if rules is None or action not in rules:
        return False
    return is_granted(session, permissions=rules[action])


def allowed_actions(session: Session | None, resource: str) -> dict[str, bool]:
    """Return the action gate table for one resource."""
    rules = ACTION_RULES.get(resource, {})
    return {action: can_perform(session, resource, action) for action in rules}
