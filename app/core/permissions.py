"""User roles and permissions."""

from enum import Enum


class Role(str, Enum):
    """User roles in the system."""

    SUPERADMIN = "superadmin"  # Platform operator, access to all institutes
    ADMIN = "admin"  # Full access to their institute
    TEACHER = "teacher"  # Courses they teach and enrolled students
    PARENT = "parent"  # Their own family
    STUDENT = "student"  # Their own record


# Permissions by role
ROLE_PERMISSIONS = {
    Role.SUPERADMIN: [
        "institutes:read",
        "institutes:write",
        "users:read",
        "users:write",
        "families:read",
        "families:write",
        "students:read",
        "students:write",
        "courses:read",
        "courses:write",
        "fees:read",
        "fees:write",
        "payments:read",
        "payments:write",
        "academics:read",
        "academics:write",
        "reports:read",
        "modules:read",
        "modules:write",
    ],
    Role.ADMIN: [
        "users:read",
        "users:write",
        "families:read",
        "families:write",
        "students:read",
        "students:write",
        "courses:read",
        "courses:write",
        "fees:read",
        "fees:write",
        "payments:read",
        "payments:write",
        "academics:read",
        "academics:write",
        "reports:read",
        "modules:read",
    ],
    Role.TEACHER: [
        "students:read",
        "courses:read",
        "academics:read",
        "academics:write",
        "portal:teacher",
    ],
    Role.PARENT: [
        "portal:parent",
    ],
    Role.STUDENT: [
        "portal:student",
    ],
}


# Which roles can create which other roles
ROLE_HIERARCHY = {
    Role.SUPERADMIN: [Role.SUPERADMIN, Role.ADMIN, Role.TEACHER, Role.PARENT, Role.STUDENT],
    Role.ADMIN: [Role.TEACHER, Role.PARENT, Role.STUDENT],
    Role.TEACHER: [],
    Role.PARENT: [],
    Role.STUDENT: [],
}


def has_permission(role: Role, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, [])


def can_create_role(creator_role: Role, target_role: Role) -> bool:
    """Check if a role can create another role."""
    return target_role in ROLE_HIERARCHY.get(creator_role, [])


def can_manage_institutes(role: Role) -> bool:
    """Check if role can create/manage institutes."""
    return role == Role.SUPERADMIN
