# This project was developed with assistance from AI tools.
"""Offline sync request/response schemas."""

from datetime import datetime
from typing import Any

from pms_db.enums import EntityType
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SYNC_COLLECTIONS: tuple[str, ...] = (
    "projects",
    "subprojects",
    "activities",
    "projectUsers",
    "subprojectUsers",
    "activityUsers",
    "services",
    "formTemplates",
    "serviceDeliveries",
    "formResponses",
    "beneficiaries",
)


class SyncPullRequest(BaseModel):
    """Body of ``POST /api/sync/pull``.

    ``since`` is ignored when ``full`` is true. ``entities`` limits the
    snapshot to the named collections. ``entityId``/``entityType`` narrow
    the polymorphic collections to one entity.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    since: datetime | None = None
    full: bool = False
    entities: list[str] | None = None
    entity_id: str | None = None
    entity_type: EntityType | None = None

    @field_validator("entities")
    @classmethod
    def _known_collections(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        unknown = sorted(set(value) - set(SYNC_COLLECTIONS))
        if unknown:
            raise ValueError(f"Unknown collections: {', '.join(unknown)}")
        return value


class SyncPullResponse(BaseModel):
    """Snapshot returned by a sync pull."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    snapshot_id: str
    server_time: datetime
    data: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
