# This project was developed with assistance from AI tools.
"""
Domain enums for humanitarian program management.

Shared domain types used by both SQLAlchemy models (pms_db package)
and the access-control core (pms_api package).
"""

import enum


class RoleName(str, enum.Enum):
    """Closed role vocabulary shared with the role-management subsystem.

    Values are the names stored in the ``roles`` table.
    """

    SUPER_ADMIN = "SuperAdmin"
    SYSTEM_ADMINISTRATOR = "System Administrator"
    PROGRAM_MANAGER = "Program Manager"
    SUB_PROJECT_MANAGER = "Sub-Project Manager"
    FIELD_OPERATOR = "Field Operator"

    @classmethod
    def admin_tier(cls) -> frozenset["RoleName"]:
        """Roles with unrestricted scope and PII decrypt rights."""
        return frozenset({cls.SUPER_ADMIN, cls.SYSTEM_ADMINISTRATOR})


class EntityType(str, enum.Enum):
    """Levels of the project -> subproject -> activity containment chain."""

    PROJECT = "project"
    SUBPROJECT = "subproject"
    ACTIVITY = "activity"

    @classmethod
    def parse(cls, value: str | None) -> "EntityType | None":
        """Return the matching member, or None for anything outside the chain."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (TypeError, ValueError):
            return None


class RecordStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
