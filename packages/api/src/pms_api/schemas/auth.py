# This project was developed with assistance from AI tools.
"""Authentication and authorization schemas.

``EntityFilter`` is a closed union of three variants. Every consumer
dispatches on the concrete class and ends with ``assert_never`` so that a
new variant cannot be added without revisiting each call site.
"""

from typing import Literal

from pms_db.enums import EntityType
from pydantic import BaseModel, ConfigDict, Field


class Unrestricted(BaseModel):
    """No entity predicate is added."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unrestricted"] = "unrestricted"


class ByEntityIds(BaseModel):
    """Restrict to rows whose entity resolves into ``ids`` at ``level``.

    An empty ``ids`` set means zero visible rows, never "no restriction".
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["by_entity_ids"] = "by_entity_ids"
    ids: frozenset[str] = Field(default_factory=frozenset)
    level: EntityType = EntityType.PROJECT


class BySelfStaffId(BaseModel):
    """Restrict rows to those where the principal is the staff/submitter."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["by_self_staff_id"] = "by_self_staff_id"
    staff_user_id: str


EntityFilter = Unrestricted | ByEntityIds | BySelfStaffId


class UserContext(BaseModel):
    """Injected by auth middleware into every authenticated request.

    ``roles`` holds role names attached to the token, if any. The Role
    Resolver treats a non-empty tuple as a cache and skips the DB lookup.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str = ""
    name: str = ""
    roles: tuple[str, ...] = ()


class TokenPayload(BaseModel):
    """Decoded JWT claims issued by the auth subsystem."""

    sub: str | None = None
    id: str | None = None
    email: str = ""
    name: str = ""
    roles: list = Field(default_factory=list)

    @property
    def principal_id(self) -> str | None:
        return self.sub or self.id
