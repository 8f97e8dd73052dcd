"""
backend/rbac.py

Role-Based Access Control (RBAC) for asset access reports.

Every enrolled role may record its own accesses and read them back.
Only staff roles may read other users' accesses.

Pure Python logic - no FastAPI imports, no database access.
"""

from typing import Set


class Capability:
    """Capability constants."""
    ACCESS_LOG = "asset_accesses:log"
    ACCESS_READ = "asset_accesses:read"
    ACCESS_READ_ALL = "asset_accesses:read_all"


class Role:
    """Role constants for RBAC."""
    ADMIN = "admin"
    TEACHER = "teacher"
    TA = "ta"
    STUDENT = "student"
    OBSERVER = "observer"


ROLE_CAPABILITIES: dict[str, Set[str]] = {
    Role.ADMIN: {
        Capability.ACCESS_LOG,
        Capability.ACCESS_READ,
        Capability.ACCESS_READ_ALL,
    },
    Role.TEACHER: {
        Capability.ACCESS_LOG,
        Capability.ACCESS_READ,
        Capability.ACCESS_READ_ALL,
    },
    Role.TA: {
        Capability.ACCESS_LOG,
        Capability.ACCESS_READ,
        Capability.ACCESS_READ_ALL,
    },
    Role.STUDENT: {
        Capability.ACCESS_LOG,
        Capability.ACCESS_READ,
    },
    # Observers browse on behalf of someone else; their views aren't recorded
    Role.OBSERVER: {
        Capability.ACCESS_READ,
    },
}


def effective_capabilities(role: str) -> Set[str]:
    """
    Capabilities granted to a role. Unknown roles get nothing.

    Args:
        role: User role (e.g., "teacher", "student")

    Returns:
        Set of capability strings (a copy; safe to mutate)
    """
    role_lower = role.lower() if role else ""
    return set(ROLE_CAPABILITIES.get(role_lower, set()))
