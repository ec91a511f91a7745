# This project was developed with assistance from AI tools.
"""Offline sync pull: a role-scoped snapshot of the hierarchy and its data.

Single-level collections (projects, subprojects, activities and their
user links) are scoped in SQL. Catalog collections (services, form
templates) are limited to entries associated with an entity in scope.
Polymorphic collections (service deliveries, form responses) are fetched
and then filtered with the request's batched hierarchy resolver.
Beneficiaries go through the same PII gate as the beneficiary endpoints.
"""

import logging
import uuid
from datetime import UTC, datetime

from pms_db import (
    Activity,
    ActivityUser,
    Beneficiary,
    FormEntityAssociation,
    FormResponse,
    FormTemplate,
    Project,
    ProjectUser,
    Service,
    ServiceAssignment,
    ServiceDelivery,
    Subproject,
    SubprojectUser,
)
from pms_db.enums import EntityType
from pydantic.alias_generators import to_camel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import ByEntityIds, EntityFilter
from ..schemas.sync import SYNC_COLLECTIONS, SyncPullRequest
from .access import AccessContext
from .beneficiary import visibility_clause
from .delivery import DELIVERY_TARGET
from .pii import audit_pii_list_read, shape_list
from .scope import (
    EntityColumns,
    RequestFilters,
    apply_predicate,
    build_predicate,
    fetch_scoped_rows,
    filter_rows,
)

logger = logging.getLogger(__name__)

FORM_RESPONSE_TARGET = EntityColumns(
    entity_id=FormResponse.entity_id,
    entity_type=FormResponse.entity_type,
    staff=FormResponse.submitted_by,
    columns={
        "form_template_id": FormResponse.form_template_id,
        "beneficiary_id": FormResponse.beneficiary_id,
        "date": FormResponse.submitted_at,
    },
)

# Collection name -> (model, scope target).
_SQL_SCOPED = {
    "projects": (Project, EntityColumns(entity_id=Project.id, level=EntityType.PROJECT)),
    "subprojects": (Subproject, EntityColumns(entity_id=Subproject.id, level=EntityType.SUBPROJECT)),
    "activities": (Activity, EntityColumns(entity_id=Activity.id, level=EntityType.ACTIVITY)),
    "projectUsers": (
        ProjectUser,
        EntityColumns(entity_id=ProjectUser.project_id, level=EntityType.PROJECT, staff=ProjectUser.user_id),
    ),
    "subprojectUsers": (
        SubprojectUser,
        EntityColumns(
            entity_id=SubprojectUser.subproject_id,
            level=EntityType.SUBPROJECT,
            staff=SubprojectUser.user_id,
        ),
    ),
}

# Catalog name -> (model, association column pointing at the model, association target).
_CATALOG = {
    "services": (
        Service,
        ServiceAssignment.service_id,
        EntityColumns(entity_id=ServiceAssignment.entity_id, entity_type=ServiceAssignment.entity_type),
    ),
    "formTemplates": (
        FormTemplate,
        FormEntityAssociation.form_template_id,
        EntityColumns(entity_id=FormEntityAssociation.entity_id, entity_type=FormEntityAssociation.entity_type),
    ),
}


def catalog_clause(model, link, target: EntityColumns, entity_filter: EntityFilter):
    """IN-subquery over the catalog's associations, or None when the whole catalog is visible."""
    if not isinstance(entity_filter, ByEntityIds):
        return None
    predicate = build_predicate(RequestFilters(), entity_filter, target)
    return model.id.in_(select(link).where(predicate))


def serialize_row(row) -> dict:
    """Column attributes of an ORM row as a camelCase dict."""
    out = {}
    for attr in sa_inspect(row).mapper.column_attrs:
        value = getattr(row, attr.key)
        out[to_camel(attr.key)] = getattr(value, "value", value)
    return out


def _since_clause(model, since: datetime | None):
    return None if since is None else model.updated_at >= since


def _base_stmt(model, since: datetime | None):
    stmt = select(model)
    clause = _since_clause(model, since)
    return stmt if clause is None else stmt.where(clause)


async def pull(session: AsyncSession, access: AccessContext, request: SyncPullRequest) -> dict:
    """Build the snapshot for the caller.

    Returns a dict with ``snapshotId``, ``serverTime``, ``piiDecrypted``
    and ``data`` (one list per requested collection). ``piiDecrypted``
    tells the route whether plaintext PII left the server.
    """
    since = None if request.full else request.since
    wanted = set(request.entities) if request.entities else set(SYNC_COLLECTIONS)
    scope = access.entity_filter

    # Entity overrides only make sense for rows that carry (entity_id, entity_type).
    entity_filters = RequestFilters(
        entity_id=request.entity_id,
        entity_type=request.entity_type if request.entity_id else None,
    )
    plain_filters = RequestFilters()

    data: dict[str, list] = {}

    for name, (model, target) in _SQL_SCOPED.items():
        if name not in wanted:
            continue
        stmt = apply_predicate(_base_stmt(model, since), plain_filters, scope, target)
        rows = (await session.execute(stmt)).scalars().all()
        data[name] = [serialize_row(r) for r in rows]

    for name, (model, link, target) in _CATALOG.items():
        if name not in wanted:
            continue
        stmt = _base_stmt(model, since)
        clause = catalog_clause(model, link, target, scope)
        if clause is not None:
            stmt = stmt.where(clause)
        rows = (await session.execute(stmt)).scalars().all()
        data[name] = [serialize_row(r) for r in rows]

    if "activityUsers" in wanted:
        rows = (await session.execute(_base_stmt(ActivityUser, since))).scalars().all()
        rows = await filter_rows(
            rows,
            scope,
            access.resolver,
            staff_attr="user_id",
            key=lambda r: (r.activity_id, EntityType.ACTIVITY),
        )
        data["activityUsers"] = [serialize_row(r) for r in rows]

    if "serviceDeliveries" in wanted:
        rows = await fetch_scoped_rows(
            session, _base_stmt(ServiceDelivery, since),
            entity_filters, scope, DELIVERY_TARGET, access.resolver,
        )
        data["serviceDeliveries"] = [serialize_row(r) for r in rows]

    if "formResponses" in wanted:
        rows = await fetch_scoped_rows(
            session, _base_stmt(FormResponse, since),
            entity_filters, scope, FORM_RESPONSE_TARGET, access.resolver,
        )
        data["formResponses"] = [serialize_row(r) for r in rows]

    pii_decrypted = False
    if "beneficiaries" in wanted:
        stmt = _base_stmt(Beneficiary, since).order_by(Beneficiary.created_at.desc())
        clause = visibility_clause(entity_filters, access)
        if clause is not None:
            stmt = stmt.where(clause)
        rows = list((await session.execute(stmt)).scalars().all())
        data["beneficiaries"] = shape_list(rows, access.can_decrypt)
        if access.can_decrypt:
            pii_decrypted = True
            await audit_pii_list_read(
                session, access.user_id, count=len(rows),
                source="POST /sync/pull",
            )
            await session.commit()

    logger.info(
        "Sync pull user=%s scope=%s collections=%s since=%s can_decrypt=%s",
        access.user_id,
        scope.kind,
        sorted(data),
        since.isoformat() if since else None,
        access.can_decrypt,
    )

    return {
        "snapshotId": str(uuid.uuid4()),
        "serverTime": datetime.now(UTC),
        "piiDecrypted": pii_decrypted,
        "data": data,
    }
