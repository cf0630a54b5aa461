"""Static sidebar navigation tree."""

from dataclasses import dataclass

from prison_console.domain.session import Permission, RoleName


@dataclass(frozen=True)
class NavItem:
    """A menu node gated by permissions (any one) and roles (any one).

    ``children`` is ``None`` for a leaf. A parent declares a tuple of children;
    it is hidden whenever none of them survive filtering.
    """

    title: str
    href: str
    icon: str | None = None
    permissions: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    badge: str | None = None
    children: tuple["NavItem", ...] | None = None


NAVIGATION: tuple[NavItem, ...] = (
    NavItem(title="Dashboard", href="/dashboard", icon="layout-dashboard"),
    NavItem(
        title="Prisons",
        href="/prisons",
        icon="building-2",
        permissions=(Permission.VIEW_PRISONS, Permission.MANAGE_PRISONS),
        roles=(RoleName.SUPER_ADMIN,),
    ),
    NavItem(
        title="Users",
        href="/users",
        icon="user-cog",
        permissions=(Permission.VIEW_USERS, Permission.MANAGE_USERS),
    ),
    NavItem(
        title="Prisoners",
        href="/prisoners",
        icon="shield",
        permissions=(Permission.VIEW_PRISONERS, Permission.MANAGE_PRISONERS),
        children=(
            NavItem(
                title="All Prisoners",
                href="/prisoners",
                permissions=(Permission.VIEW_PRISONERS,),
            ),
            NavItem(
                title="Add Prisoner",
                href="/prisoners/add",
                permissions=(Permission.MANAGE_PRISONERS,),
            ),
        ),
    ),
    NavItem(
        title="Work Records",
        href="/work-records",
        icon="briefcase",
        permissions=(
            Permission.VIEW_WORK_RECORDS,
            Permission.MANAGE_WORK_RECORDS,
            Permission.RECORD_WORK,
        ),
    ),
    NavItem(
        title="Behaviour Records",
        href="/behaviour-records",
        icon="file-text",
        permissions=(
            Permission.VIEW_BEHAVIOUR,
            Permission.MANAGE_BEHAVIOUR,
            Permission.RECORD_BEHAVIOUR,
        ),
    ),
    NavItem(
        title="Visitors",
        href="/visitors",
        icon="user-check",
        permissions=(Permission.VIEW_VISITORS, Permission.MANAGE_VISITORS),
    ),
    NavItem(
        title="Visits",
        href="/visits",
        icon="calendar-check",
        permissions=(
            Permission.VIEW_VISITORS,
            Permission.MANAGE_VISITORS,
            Permission.SCHEDULE_VISIT,
        ),
    ),
)
