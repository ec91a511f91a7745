# This project was developed with assistance from AI tools.
"""Beneficiary reads with role-based scope and the PII gate.

A beneficiary is visible through its assignments: under a ``ByEntityIds``
scope at least one assignment must resolve into the scope. Unrestricted
and field-operator callers see every beneficiary; the field-operator self
filter has no staff column to act on here.
"""

import logging

from pms_db import Beneficiary, BeneficiaryAssignment
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..schemas.auth import ByEntityIds
from .access import AccessContext
from .pii import audit_pii_list_read, audit_pii_read, shape_list, shape_record
from .scope import EntityColumns, RequestFilters, build_predicate

logger = logging.getLogger(__name__)

ASSIGNMENT_TARGET = EntityColumns(
    entity_id=BeneficiaryAssignment.entity_id,
    entity_type=BeneficiaryAssignment.entity_type,
)


def visibility_clause(filters: RequestFilters, access: AccessContext):
    """IN-subquery over assignments, or None when every beneficiary is visible."""
    if not filters.has_entity_override() and not isinstance(access.entity_filter, ByEntityIds):
        return None
    assignment_filters = RequestFilters(
        entity_id=filters.entity_id,
        entity_ids=filters.entity_ids,
        entity_type=filters.entity_type,
    )
    predicate = build_predicate(assignment_filters, access.entity_filter, ASSIGNMENT_TARGET)
    return Beneficiary.id.in_(select(BeneficiaryAssignment.beneficiary_id).where(predicate))


def _apply_filters(stmt, filters: RequestFilters, access: AccessContext):
    clause = visibility_clause(filters, access)
    if clause is not None:
        stmt = stmt.where(clause)
    if filters.status:
        stmt = stmt.where(Beneficiary.status == filters.status)
    return stmt


async def list_beneficiaries(
    session: AsyncSession,
    access: AccessContext,
    filters: RequestFilters,
    *,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict], int]:
    """Return one page of shaped beneficiaries plus the total count.

    Writes a list-read audit entry when plaintext is emitted.
    """
    count_stmt = _apply_filters(select(func.count(Beneficiary.id)), filters, access)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = (
        select(Beneficiary)
        .order_by(Beneficiary.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    stmt = _apply_filters(stmt, filters, access)
    rows = list((await session.execute(stmt)).scalars().all())

    logger.info(
        "Beneficiaries.list role evaluation user=%s roles=%s can_decrypt=%s",
        access.user_id,
        sorted(access.role_names),
        access.can_decrypt,
    )
    items = shape_list(rows, access.can_decrypt)

    if access.can_decrypt:
        await audit_pii_list_read(
            session, access.user_id, count=len(items), page=page, limit=limit,
            source="GET /beneficiaries",
        )
        await session.commit()

    return items, total


async def get_beneficiary(
    session: AsyncSession,
    access: AccessContext,
    beneficiary_id: str,
) -> Beneficiary | None:
    """Return the beneficiary if it exists and is inside the caller's scope.

    Returns None for out-of-scope records (the route maps it to 404) so the
    response does not reveal whether the record exists.
    """
    stmt = (
        select(Beneficiary)
        .options(selectinload(Beneficiary.assignments))
        .where(Beneficiary.id == beneficiary_id)
    )
    beneficiary = (await session.execute(stmt)).scalar_one_or_none()
    if beneficiary is None:
        return None

    if isinstance(access.entity_filter, ByEntityIds):
        for assignment in beneficiary.assignments:
            if await access.resolver.is_in_scope(
                assignment.entity_id, assignment.entity_type, access.entity_filter,
            ):
                return beneficiary
        logger.debug("Beneficiary %s outside scope of user %s", beneficiary_id, access.user_id)
        return None

    return beneficiary


async def read_beneficiary(
    session: AsyncSession,
    access: AccessContext,
    beneficiary_id: str,
) -> dict | None:
    """Fetch, scope-check, and shape one beneficiary; audit plaintext reads."""
    beneficiary = await get_beneficiary(session, access, beneficiary_id)
    if beneficiary is None:
        return None

    logger.info(
        "Beneficiaries.get role evaluation id=%s user=%s roles=%s can_decrypt=%s",
        beneficiary_id,
        access.user_id,
        sorted(access.role_names),
        access.can_decrypt,
    )
    shaped = shape_record(beneficiary, access.can_decrypt)

    if access.can_decrypt:
        await audit_pii_read(session, access.user_id, beneficiary)
        await session.commit()

    return shaped
