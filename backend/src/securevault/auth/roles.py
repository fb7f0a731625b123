"""User roles and permission hierarchy.

Role Hierarchy (descending permissions):
- ADMIN: everything a bank officer can do, plus account administration
- BANK_OFFICER: reviews customer documents, reads the audit trail
- USER: manages own documents and shares, exercises own data rights
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles.

    Values are stored as strings in the database and must match exactly.
    """
    ADMIN = "ADMIN"
    BANK_OFFICER = "BANK_OFFICER"
    USER = "USER"


# Each role includes permissions of all roles below it
ROLE_HIERARCHY = {
    UserRole.ADMIN: {UserRole.ADMIN, UserRole.BANK_OFFICER, UserRole.USER},
    UserRole.BANK_OFFICER: {UserRole.BANK_OFFICER, UserRole.USER},
    UserRole.USER: {UserRole.USER},
}


def has_permission(user_role: UserRole, required_role: UserRole) -> bool:
    """Check if a user role satisfies a minimum required role.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.BANK_OFFICER)
        True
        >>> has_permission(UserRole.USER, UserRole.BANK_OFFICER)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())
