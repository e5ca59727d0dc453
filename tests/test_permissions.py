"""
Tests for role-based permissions.
"""

import pytest

from donation_portal.permissions import (
    Permission,
    UserRole,
    get_permissions,
    has_permission,
)


class TestRolePermissions:
    """Test the role to permission table."""

    def test_super_admin_has_everything(self):
        assert get_permissions(UserRole.SUPER_ADMIN) == list(Permission)

    def test_admin(self):
        assert get_permissions("admin") == [
            Permission.MANAGE_GALLERY,
            Permission.VIEW_ACTIVITY,
            Permission.UPLOAD_IMAGES,
        ]

    def test_photographer(self):
        assert get_permissions("photographer") == [
            Permission.MANAGE_GALLERY,
            Permission.UPLOAD_IMAGES,
        ]

    @pytest.mark.parametrize("role", ["guest", "", None])
    def test_unknown_role(self, role):
        assert get_permissions(role) == []
        assert not has_permission(role, Permission.MANAGE_GALLERY)


class TestHasPermission:
    @pytest.mark.parametrize(
        "role,permission,expected",
        [
            ("super_admin", Permission.MANAGE_USERS, True),
            ("admin", Permission.MANAGE_USERS, False),
            ("admin", "view_activity", True),
            ("photographer", Permission.VIEW_ACTIVITY, False),
            (UserRole.PHOTOGRAPHER, "upload_images", True),
        ],
    )
    def test_checks(self, role, permission, expected):
        assert has_permission(role, permission) is expected

    def test_unknown_permission(self):
        assert not has_permission("super_admin", "launch_rockets")
