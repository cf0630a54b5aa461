"""Tests for navigation filtering."""

from prison_console.domain.navigation import NAVIGATION, NavItem
from prison_console.domain.session import Role, Session
from prison_console.services.navigation import filter_navigation, serialize_navigation


def _session(role: str, *permissions: str) -> Session:
    return Session(
        user_id=1,
        display_name="Staff",
        username="staff",
        role=Role(name=role, permissions=permissions),
    )


def _titles(items: list[NavItem]) -> list[str]:
    return [item.title for item in items]


def test_no_session_sees_nothing() -> None:
    assert filter_navigation(NAVIGATION, None) == []


def test_parent_dropped_when_only_child_is_pruned() -> None:
    tree = (
        NavItem(
            title="Prisoners",
            href="/prisoners",
            permissions=("view_prisoners", "manage_prisoners"),
            children=(
                NavItem(
                    title="Add Prisoner",
                    href="/prisoners/add",
                    permissions=("manage_prisoners",),
                ),
            ),
        ),
    )

    visible = filter_navigation(tree, _session("Officer", "view_prisoners"))

    assert visible == []


def test_children_pruned_individually() -> None:
    visible = filter_navigation(NAVIGATION, _session("Officer", "view_prisoners"))

    prisoners = next(item for item in visible if item.title == "Prisoners")
    assert prisoners.children is not None
    assert _titles(list(prisoners.children)) == ["All Prisoners"]


def test_role_and_permission_both_required() -> None:
    prison_admin = _session("Prison Admin", "view_prisons", "view_users")
    super_admin = _session("Super Admin", "view_prisons")

    assert _titles(filter_navigation(NAVIGATION, prison_admin)) == [
        "Dashboard",
        "Users",
    ]
    assert "Prisons" in _titles(filter_navigation(NAVIGATION, super_admin))


def test_filtered_tree_preserves_order_and_static_tree() -> None:
    session = _session(
        "Super Admin",
        "manage_prisons",
        "manage_prisoners",
        "view_prisoners",
        "schedule_visit",
    )

    visible = filter_navigation(NAVIGATION, session)

    assert _titles(visible) == ["Dashboard", "Prisons", "Prisoners", "Visits"]
    source = next(item for item in NAVIGATION if item.title == "Prisoners")
    assert source.children is not None
    assert len(source.children) == 2


def test_serialize_navigation() -> None:
    visible = filter_navigation(NAVIGATION, _session("Officer", "view_prisoners"))

    data = serialize_navigation(visible)

    assert data[0] == {
        "title": "Dashboard",
        "href": "/dashboard",
        "icon": "layout-dashboard",
        "badge": None,
    }
    assert data[1]["children"][0]["href"] == "/prisoners"
