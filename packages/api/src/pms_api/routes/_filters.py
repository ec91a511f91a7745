# This project was developed with assistance from AI tools.
"""Query-string helpers shared by scoped list and metric routes."""

from datetime import datetime

from fastapi import Query
from pms_db.enums import EntityType

from ..services.scope import RequestFilters


def split_ids(values: list[str] | None) -> list[str] | None:
    """Accept repeated params and comma-separated values alike."""
    if not values:
        return None
    ids = [part.strip() for value in values for part in value.split(",") if part.strip()]
    return ids or None


def entity_filters(
    entity_id: str | None = Query(default=None, alias="entityId"),
    entity_ids: list[str] | None = Query(default=None, alias="entityIds"),
    entity_type: EntityType | None = Query(default=None, alias="entityType"),
) -> RequestFilters:
    """Entity-dimension overrides common to every scoped route."""
    return RequestFilters(
        entity_id=entity_id or None,
        entity_ids=split_ids(entity_ids),
        entity_type=entity_type,
    )


def delivery_filters(
    entity_id: str | None = Query(default=None, alias="entityId"),
    entity_ids: list[str] | None = Query(default=None, alias="entityIds"),
    entity_type: EntityType | None = Query(default=None, alias="entityType"),
    staff_user_id: str | None = Query(default=None, alias="staffUserId"),
    service_id: str | None = Query(default=None, alias="serviceId"),
    service_ids: list[str] | None = Query(default=None, alias="serviceIds"),
    beneficiary_id: str | None = Query(default=None, alias="beneficiaryId"),
    form_response_id: str | None = Query(default=None, alias="formResponseId"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
) -> RequestFilters:
    """Delivery metric filters; all of them AND together with the caller's scope."""
    return RequestFilters(
        entity_id=entity_id or None,
        entity_ids=split_ids(entity_ids),
        entity_type=entity_type,
        staff_user_id=staff_user_id or None,
        service_id=service_id or None,
        service_ids=split_ids(service_ids),
        beneficiary_id=beneficiary_id or None,
        form_response_id=form_response_id or None,
        start_date=start_date,
        end_date=end_date,
    )
