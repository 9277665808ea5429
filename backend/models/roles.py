"""
Project roles and visibility tiers.

Roles form a total order by level. Every permission decision in the
services reduces to one of the helpers below, so they are the only place
where role levels are compared.
"""

import enum

from models.exceptions import InvalidRoleException, InvalidVisibilityException


class Role(str, enum.Enum):
    COMMUNITY = "community"
    VIEWER = "viewer"
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"


class Visibility(str, enum.Enum):
    TEAM_ONLY = "TEAM_ONLY"
    COMMUNITY = "COMMUNITY"


ROLE_LEVELS: dict[Role, int] = {
    Role.COMMUNITY: 0,
    Role.VIEWER: 1,
    Role.MEMBER: 2,
    Role.ADMIN: 3,
    Role.OWNER: 4,
}


def level(role: Role) -> int:
    """Return the numeric level of a role (community=0 ... owner=4)."""
    return ROLE_LEVELS[role]


def has_at_least(role: Role, required: Role) -> bool:
    return level(role) >= level(required)


def is_team_role(role: Role) -> bool:
    """Viewer and above are team roles; community is not."""
    return level(role) >= level(Role.VIEWER)


def can_modify(role: Role) -> bool:
    """Member and above may change feedback, tags and merges."""
    return has_at_least(role, Role.MEMBER)


def is_admin_or_owner(role: Role) -> bool:
    return role in (Role.ADMIN, Role.OWNER)


def can_manage_role(actor: Role, target: Role) -> bool:
    """
    Check whether an actor may grant or act upon the target role.

    Only admins and owners manage roles, and only roles strictly below
    their own: an admin cannot grant admin.

    Args:
        actor: Role of the acting user
        target: Role being granted or held by the affected member

    Returns:
        True if allowed
    """
    return is_admin_or_owner(actor) and level(actor) > level(target)


def is_visible_to(visibility: Visibility, role: Role) -> bool:
    """
    Decide whether content with the given visibility is observable by a role.

    COMMUNITY content is visible to everyone; TEAM_ONLY content requires a
    team role.
    """
    if visibility == Visibility.COMMUNITY:
        return True
    return is_team_role(role)


def visible_tiers(role: Role) -> list[Visibility]:
    """Return the visibility tiers a role may read, for list filtering."""
    if is_team_role(role):
        return [Visibility.TEAM_ONLY, Visibility.COMMUNITY]
    return [Visibility.COMMUNITY]


def team_roles() -> list[Role]:
    return [role for role in Role if is_team_role(role)]


def parse_role(value: str) -> Role:
    """
    Parse a role name.

    Raises:
        InvalidRoleException: If the value is not a known role
    """
    try:
        return Role(value)
    except ValueError:
        raise InvalidRoleException(
            f"Unknown role '{value}'",
            fields={"role": "must be one of " + ", ".join(r.value for r in Role)},
        ) from None


def parse_visibility(value: str) -> Visibility:
    """
    Parse a visibility tier.

    Raises:
        InvalidVisibilityException: If the value is not a known tier
    """
    try:
        return Visibility(value)
    except ValueError:
        raise InvalidVisibilityException(
            f"Unknown visibility '{value}'",
            fields={"visibility": "must be TEAM_ONLY or COMMUNITY"},
        ) from None
