# This project was developed with assistance from AI tools.
"""Pure role functions with no FastAPI, HTTP, or DB dependencies.

Shared by the scope calculator and the PII gate. Both admin checks use the
same tier but are evaluated independently so an endpoint can apply its own
PII policy without touching scope.
"""

from collections.abc import Iterable

from pms_db.enums import RoleName

ADMIN_ROLES: frozenset[str] = frozenset(r.value for r in RoleName.admin_tier())


def normalize_role_names(roles: Iterable | None) -> frozenset[str]:
    """Collapse a role list into a set of names.

    Accepts plain strings, ``RoleName`` members, ``{"name": ...}`` dicts, or
    objects with a ``name`` attribute (ORM rows). Blank entries are dropped.
    """
    names: set[str] = set()
    for role in roles or ():
        if isinstance(role, RoleName):
            name = role.value
        elif isinstance(role, str):
            name = role
        elif isinstance(role, dict):
            name = role.get("name")
        else:
            name = getattr(role, "name", None)
        if name:
            names.add(str(name))
    return frozenset(names)


def is_privileged(role_names: Iterable[str]) -> bool:
    """True when the role set intersects the admin tier."""
    return not ADMIN_ROLES.isdisjoint(role_names)


def can_decrypt(role_names: Iterable[str]) -> bool:
    """PII gate: decrypted personal fields are visible to the admin tier only.

    A pure function of the role set; it never varies per row or per field.
    """
    return is_privileged(role_names)
