"""Navigation filtering for the sidebar."""

from collections.abc import Sequence
from dataclasses import replace

from prison_console.domain.navigation import NavItem
from prison_console.domain.session import Session
from prison_console.services.permissions import has_any_permission, has_any_role


def filter_navigation(
    items: Sequence[NavItem], session: Session | None
) -> list[NavItem]:
    """Return the subtree visible to ``session``, preserving order.

    A node needs any one of its permissions and any one of its roles. A parent
    whose children are all pruned is dropped with them.
    """
    if session is None:
        return []

    visible: list[NavItem] = []
    for item in items:
        permission_ok = not item.permissions or has_any_permission(
            session, item.permissions
        )
        role_ok = not item.roles or has_any_role(session, item.roles)
        if not (permission_ok and role_ok):
            continue
        if item.children is not None:
            children = filter_navigation(item.children, session)
            if not children:
                continue
            visible.append(replace(item, children=tuple(children)))
            continue
        visible.append(item)
    return visible


def serialize_navigation(items: Sequence[NavItem]) -> list[dict[str, object]]:
    """Convert a navigation tree into JSON-ready dicts."""
    serialized = []
    for item in items:
        entry: dict[str, object] = {
            "title": item.title,
            "href": item.href,
            "icon": item.icon,
            "badge": item.badge,
        }
        if item.children is not None:
            entry["children"] = serialize_navigation(item.children)
        serialized.append(entry)
    return serialized
