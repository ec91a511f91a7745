# This project was developed with assistance from AI tools.
"""Service-delivery metrics scoped by role.

Aggregates run entirely in SQL: the scope predicate expands the
project -> subproject -> activity chain with sub-selects, so counts and
group-bys only ever see rows the caller may see.
"""

import logging
from typing import Literal

from pms_db import ServiceDelivery
from pydantic.alias_generators import to_camel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .access import AccessContext
from .scope import EntityColumns, RequestFilters, build_predicate

logger = logging.getLogger(__name__)

DELIVERY_TARGET = EntityColumns(
    entity_id=ServiceDelivery.entity_id,
    entity_type=ServiceDelivery.entity_type,
    staff=ServiceDelivery.staff_user_id,
    columns={
        "service_id": ServiceDelivery.service_id,
        "beneficiary_id": ServiceDelivery.beneficiary_id,
        "form_response_id": ServiceDelivery.form_response_id,
        "date": ServiceDelivery.delivered_at,
    },
)

GroupKey = Literal["staff_user_id", "beneficiary_id", "service_id"]

_GROUP_COLUMNS = {
    "staff_user_id": ServiceDelivery.staff_user_id,
    "beneficiary_id": ServiceDelivery.beneficiary_id,
    "service_id": ServiceDelivery.service_id,
}


async def count_deliveries(session: AsyncSession, access: AccessContext, filters: RequestFilters) -> int:
    """Total deliveries visible to the caller after request filters."""
    stmt = select(func.count(ServiceDelivery.id)).where(
        build_predicate(filters, access.entity_filter, DELIVERY_TARGET)
    )
    return (await session.execute(stmt)).scalar() or 0


async def deliveries_grouped(
    session: AsyncSession,
    access: AccessContext,
    filters: RequestFilters,
    group_by: GroupKey,
) -> list[dict]:
    """Delivery counts grouped by staff, beneficiary, or service, largest first."""
    column = _GROUP_COLUMNS[group_by]
    count = func.count(ServiceDelivery.id)
    stmt = (
        select(column.label(group_by), count.label("count"))
        .where(build_predicate(filters, access.entity_filter, DELIVERY_TARGET))
        .group_by(column)
        .order_by(count.desc())
    )
    result = await session.execute(stmt)
    logger.debug("Delivery metrics by %s for user %s (%s)", group_by, access.user_id, access.entity_filter.kind)
    out_key = to_camel(group_by)
    return [{out_key: key, "count": int(n)} for key, n in result.all()]
