# This project was developed with assistance from AI tools.
"""Scoped service-delivery metrics."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pms_db import get_db
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import Access
from ..schemas.metrics import DeliveryCountResponse, DeliveryGroupsResponse
from ..services import delivery as delivery_service
from ..services.scope import RequestFilters
from ._filters import delivery_filters

router = APIRouter()

Filters = Annotated[RequestFilters, Depends(delivery_filters)]


@router.get("/metrics/deliveries/count", response_model=DeliveryCountResponse)
async def deliveries_count(
    access: Access,
    filters: Filters,
    session: AsyncSession = Depends(get_db),
) -> DeliveryCountResponse:
    total = await delivery_service.count_deliveries(session, access, filters)
    return DeliveryCountResponse(total=total)


@router.get("/metrics/deliveries/by-user", response_model=DeliveryGroupsResponse)
async def deliveries_by_user(
    access: Access,
    filters: Filters,
    session: AsyncSession = Depends(get_db),
) -> DeliveryGroupsResponse:
    items = await delivery_service.deliveries_grouped(session, access, filters, "staff_user_id")
    return DeliveryGroupsResponse(items=items)


@router.get("/metrics/deliveries/by-beneficiary", response_model=DeliveryGroupsResponse)
async def deliveries_by_beneficiary(
    access: Access,
    filters: Filters,
    session: AsyncSession = Depends(get_db),
) -> DeliveryGroupsResponse:
    items = await delivery_service.deliveries_grouped(session, access, filters, "beneficiary_id")
    return DeliveryGroupsResponse(items=items)


@router.get("/metrics/deliveries/by-service", response_model=DeliveryGroupsResponse)
async def deliveries_by_service(
    access: Access,
    filters: Filters,
    session: AsyncSession = Depends(get_db),
) -> DeliveryGroupsResponse:
    items = await delivery_service.deliveries_grouped(session, access, filters, "service_id")
    return DeliveryGroupsResponse(items=items)
