# This project was developed with assistance from AI tools.
"""Beneficiary read routes with role scope and PII gating."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pms_db import get_db
from pms_db.enums import RecordStatus
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..middleware.auth import Access
from ..middleware.pii import mark_pii_access
from ..schemas import Pagination
from ..schemas.beneficiary import BeneficiaryListResponse, BeneficiaryResponse
from ..services import beneficiary as beneficiary_service
from ..services.scope import RequestFilters
from ._filters import entity_filters

router = APIRouter()


@router.get(
    "/",
    response_model=BeneficiaryListResponse,
    response_model_exclude_unset=True,
)
async def list_beneficiaries(
    request: Request,
    access: Access,
    filters: Annotated[RequestFilters, Depends(entity_filters)],
    session: AsyncSession = Depends(get_db),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    record_status: RecordStatus | None = Query(default=None, alias="status"),
) -> BeneficiaryListResponse:
    """List beneficiaries visible to the caller. Plaintext PII for admins only."""
    if record_status is not None:
        filters.status = record_status.value
    items, total = await beneficiary_service.list_beneficiaries(
        session, access, filters, page=page, limit=limit,
    )
    mark_pii_access(request, access.can_decrypt)
    return BeneficiaryListResponse(
        data=[BeneficiaryResponse.model_validate(item) for item in items],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            has_more=(page * limit < total),
        ),
    )


@router.get(
    "/{beneficiary_id}",
    response_model=BeneficiaryResponse,
    response_model_exclude_unset=True,
)
async def get_beneficiary(
    beneficiary_id: str,
    request: Request,
    access: Access,
    session: AsyncSession = Depends(get_db),
) -> BeneficiaryResponse:
    """Get one beneficiary. Returns 404 for out-of-scope records."""
    shaped = await beneficiary_service.read_beneficiary(session, access, beneficiary_id)
    if shaped is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Beneficiary not found",
        )
    mark_pii_access(request, access.can_decrypt)
    return BeneficiaryResponse.model_validate(shaped)
