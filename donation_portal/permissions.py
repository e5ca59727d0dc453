"""Role-based permissions for admin users."""

from enum import Enum
from typing import Dict, FrozenSet, List, Union


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    PHOTOGRAPHER = "photographer"


class Permission(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_CONTRIBUTIONS = "manage_contributions"
    MANAGE_COMMITTEES = "manage_committees"
    MANAGE_GALLERY = "manage_gallery"
    MANAGE_LAND_DONORS = "manage_land_donors"
    MANAGE_SETTINGS = "manage_settings"
    VIEW_ACTIVITY = "view_activity"
    UPLOAD_IMAGES = "upload_images"


ROLE_PERMISSIONS: Dict[str, FrozenSet[Permission]] = {
    UserRole.SUPER_ADMIN.value: frozenset(Permission),
    UserRole.ADMIN.value: frozenset(
        {Permission.MANAGE_GALLERY, Permission.VIEW_ACTIVITY, Permission.UPLOAD_IMAGES}
    ),
    UserRole.PHOTOGRAPHER.value: frozenset(
        {Permission.MANAGE_GALLERY, Permission.UPLOAD_IMAGES}
    ),
}


def _role_key(role: Union[str, UserRole, None]) -> str:
    if isinstance(role, UserRole):
        return role.value
    return role or ""


def get_permissions(role: Union[str, UserRole, None]) -> List[Permission]:
    """Permissions granted to a role, in declaration order. Unknown roles get none."""
    granted = ROLE_PERMISSIONS.get(_role_key(role), frozenset())
    return [permission for permission in Permission if permission in granted]


def has_permission(
    role: Union[str, UserRole, None], permission: Union[str, Permission]
) -> bool:
    """Check whether a role grants a permission."""
    try:
        permission = Permission(permission)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(_role_key(role), frozenset())
