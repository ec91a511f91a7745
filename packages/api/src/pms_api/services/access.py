# This project was developed with assistance from AI tools.
"""Per-request access context shared by scoped services."""

from dataclasses import dataclass

from ..schemas.auth import EntityFilter, UserContext
from .hierarchy import HierarchyResolver


@dataclass
class AccessContext:
    """Everything a service needs to scope queries and gate PII for one request."""

    user: UserContext
    role_names: frozenset[str]
    entity_filter: EntityFilter
    can_decrypt: bool
    resolver: HierarchyResolver

    @property
    def user_id(self) -> str:
        return self.user.user_id
