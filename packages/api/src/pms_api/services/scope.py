# This project was developed with assistance from AI tools.
"""Shared data scope filtering for service queries.

Two halves:

* ``compute_scope`` turns a principal's role set into an ``EntityFilter``.
  Tiers are evaluated in a fixed order and are not additive: admin beats
  field operator beats program manager beats sub-project manager.
* ``build_predicate`` turns request filters plus an ``EntityFilter`` into a
  SQLAlchemy boolean clause for any base query described by an
  ``EntityColumns`` target. Precedence on the entity dimension:

    1. request ``entity_id``      -> ``entity_id = :id``
    2. request ``entity_ids``     -> ``entity_id IN (:ids)``
    3. role-derived scope         -> see ``_scope_clause``

  The staff dimension is independent: a request ``staff_user_id`` always
  wins over the field-operator self filter. Every other request filter is
  a plain AND conjunct and is never overridden by scope.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar, assert_never

from pms_db import Activity, ProjectUser, Subproject, SubprojectUser
from pms_db.enums import EntityType, RoleName
from sqlalchemy import Select, and_, false, or_, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from ..core.auth import is_privileged
from ..schemas.auth import ByEntityIds, BySelfStaffId, EntityFilter, Unrestricted
from .hierarchy import HierarchyResolver, entity_ref

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Depth of each level in the chain; deeper levels sit below shallower ones.
_DEPTH = {EntityType.PROJECT: 0, EntityType.SUBPROJECT: 1, EntityType.ACTIVITY: 2}


class ScopeResolutionError(RuntimeError):
    """Raised when assignment lookups fail while computing scope.

    Distinct from an empty scope: "we could not tell" must never be
    confused with "you have nothing".
    """


# ---------------------------------------------------------------------------
# Scope calculator
# ---------------------------------------------------------------------------


async def _assigned_ids(session: AsyncSession, id_column, user_column, user_id: str) -> frozenset[str]:
    stmt = select(id_column).where(user_column == user_id)
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Assignment lookup failed for user %s (%s)", user_id, id_column)
        raise ScopeResolutionError(f"Could not load assignments for user {user_id}") from exc
    return frozenset(str(v) for v in result.scalars().all() if v is not None)


async def compute_scope(session: AsyncSession, user_id: str, role_names: Iterable[str]) -> EntityFilter:
    """Compute the caller's default entity scope from their roles.

    Raises:
        ScopeResolutionError: an assignment lookup failed.
    """
    role_names = frozenset(role_names)

    if is_privileged(role_names):
        scope: EntityFilter = Unrestricted()
    elif RoleName.FIELD_OPERATOR.value in role_names:
        scope = BySelfStaffId(staff_user_id=user_id)
    elif RoleName.PROGRAM_MANAGER.value in role_names:
        ids = await _assigned_ids(session, ProjectUser.project_id, ProjectUser.user_id, user_id)
        scope = ByEntityIds(ids=ids, level=EntityType.PROJECT)
    elif RoleName.SUB_PROJECT_MANAGER.value in role_names:
        ids = await _assigned_ids(session, SubprojectUser.subproject_id, SubprojectUser.user_id, user_id)
        scope = ByEntityIds(ids=ids, level=EntityType.SUBPROJECT)
    else:
        scope = ByEntityIds()

    logger.debug(
        "Scope for user %s: %s (%d ids)",
        user_id,
        scope.kind,
        len(scope.ids) if isinstance(scope, ByEntityIds) else 0,
    )
    return scope


# ---------------------------------------------------------------------------
# Predicate builder
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityColumns:
    """Describes how a base query exposes its entity, staff, and filter columns.

    Args:
        entity_id: Column holding the entity reference.
        entity_type: Column holding the entity type for polymorphic rows
            (``(entity_id, entity_type)`` pairs). ``None`` when every row
            references the same level, given by ``level``.
        level: Level of ``entity_id`` when ``entity_type`` is ``None``.
        staff: Staff/submitter column used by the self filter, if any.
        columns: Extra columns addressable by orthogonal request filters.
            Recognized keys: ``service_id``, ``beneficiary_id``,
            ``form_template_id``, ``form_response_id``, ``status``, ``date``.
    """

    entity_id: Any
    entity_type: Any = None
    level: EntityType = EntityType.PROJECT
    staff: Any = None
    columns: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class RequestFilters:
    """Caller-supplied filters, already parsed from the request."""

    entity_id: str | None = None
    entity_ids: list[str] | None = None
    entity_type: EntityType | None = None
    staff_user_id: str | None = None
    service_id: str | None = None
    service_ids: list[str] | None = None
    beneficiary_id: str | None = None
    form_template_id: str | None = None
    form_response_id: str | None = None
    status: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def has_entity_override(self) -> bool:
        return bool(self.entity_id) or bool(self.entity_ids)


def _ids_at_level(ids: list[str], level: EntityType, target_level: EntityType):
    """Sub-select of ``target_level`` ids contained in ``ids`` at ``level``.

    Returns ``None`` when ``target_level`` sits above ``level``: such rows
    cannot be placed inside the scope.
    """
    if target_level == level:
        return ids
    if _DEPTH[target_level] < _DEPTH[level]:
        return None
    if level == EntityType.PROJECT and target_level == EntityType.SUBPROJECT:
        return select(Subproject.id).where(Subproject.project_id.in_(ids)).correlate(None)
    if level == EntityType.PROJECT and target_level == EntityType.ACTIVITY:
        return (
            select(Activity.id)
            .join(Subproject, Activity.subproject_id == Subproject.id)
            .where(Subproject.project_id.in_(ids))
            .correlate(None)
        )
    # level is SUBPROJECT, target is ACTIVITY
    return select(Activity.id).where(Activity.subproject_id.in_(ids)).correlate(None)


def _scope_clause(entity_filter: ByEntityIds, target: EntityColumns) -> ColumnElement[bool]:
    if not entity_filter.ids:
        return false()
    ids = sorted(entity_filter.ids)

    if target.entity_type is None:
        contained = _ids_at_level(ids, entity_filter.level, target.level)
        return false() if contained is None else target.entity_id.in_(contained)

    branches = []
    for etype in EntityType:
        contained = _ids_at_level(ids, entity_filter.level, etype)
        if contained is not None:
            branches.append(and_(target.entity_type == etype, target.entity_id.in_(contained)))
    return or_(*branches)


def _orthogonal_clauses(filters: RequestFilters, target: EntityColumns) -> list[ColumnElement[bool]]:
    cols = target.columns
    clauses = []
    if filters.entity_type is not None and target.entity_type is not None:
        clauses.append(target.entity_type == filters.entity_type)
    if filters.service_id and "service_id" in cols:
        clauses.append(cols["service_id"] == filters.service_id)
    if filters.service_ids and "service_id" in cols:
        clauses.append(cols["service_id"].in_(filters.service_ids))
    if filters.beneficiary_id and "beneficiary_id" in cols:
        clauses.append(cols["beneficiary_id"] == filters.beneficiary_id)
    if filters.form_template_id and "form_template_id" in cols:
        clauses.append(cols["form_template_id"] == filters.form_template_id)
    if filters.form_response_id and "form_response_id" in cols:
        clauses.append(cols["form_response_id"] == filters.form_response_id)
    if filters.status and "status" in cols:
        clauses.append(cols["status"] == filters.status)
    if filters.start_date is not None and "date" in cols:
        clauses.append(cols["date"] >= filters.start_date)
    if filters.end_date is not None and "date" in cols:
        clauses.append(cols["date"] <= filters.end_date)
    return clauses


def build_predicate(
    filters: RequestFilters,
    entity_filter: EntityFilter,
    target: EntityColumns,
) -> ColumnElement[bool]:
    """Build the WHERE clause for ``target`` from request filters and scope.

    The result is a composable boolean expression, not a statement, so the
    same rules serve list, aggregate, and sync queries alike.
    """
    clauses: list[ColumnElement[bool]] = []

    # Entity dimension
    if filters.entity_id:
        clauses.append(target.entity_id == filters.entity_id)
    elif filters.entity_ids:
        clauses.append(target.entity_id.in_(filters.entity_ids))
    elif isinstance(entity_filter, ByEntityIds):
        clauses.append(_scope_clause(entity_filter, target))
    elif isinstance(entity_filter, (Unrestricted, BySelfStaffId)):
        pass
    else:
        assert_never(entity_filter)

    # Staff dimension
    if target.staff is not None:
        if filters.staff_user_id:
            clauses.append(target.staff == filters.staff_user_id)
        elif isinstance(entity_filter, BySelfStaffId):
            clauses.append(target.staff == entity_filter.staff_user_id)

    clauses.extend(_orthogonal_clauses(filters, target))

    if not clauses:
        return true()
    return and_(*clauses)


def apply_predicate(
    stmt: Select,
    filters: RequestFilters,
    entity_filter: EntityFilter,
    target: EntityColumns,
) -> Select:
    """Convenience wrapper: ``stmt.where(build_predicate(...))``."""
    return stmt.where(build_predicate(filters, entity_filter, target))


# ---------------------------------------------------------------------------
# Post-query filtering
# ---------------------------------------------------------------------------


async def fetch_scoped_rows(
    session: AsyncSession,
    stmt: Select,
    filters: RequestFilters,
    entity_filter: EntityFilter,
    target: EntityColumns,
    resolver: HierarchyResolver,
) -> list:
    """Run ``stmt`` and apply scope to polymorphic rows after the fact.

    Used where the caller wants whole rows rather than aggregates (offline
    snapshots). The entity dimension of a ``ByEntityIds`` scope is checked
    with the batched hierarchy resolver; everything else, including manual
    overrides, goes into the SQL predicate.
    """
    if isinstance(entity_filter, ByEntityIds) and not filters.has_entity_override():
        stmt = apply_predicate(stmt, filters, Unrestricted(), target)
        rows = list((await session.execute(stmt)).scalars().all())
        return await resolver.filter_in_scope(rows, entity_filter)

    stmt = apply_predicate(stmt, filters, entity_filter, target)
    return list((await session.execute(stmt)).scalars().all())


async def filter_rows(
    rows: Iterable[T],
    entity_filter: EntityFilter,
    resolver: HierarchyResolver,
    *,
    staff_attr: str | None = None,
    key=entity_ref,
) -> list[T]:
    """Apply an ``EntityFilter`` to rows already in memory."""
    rows = list(rows)
    if isinstance(entity_filter, Unrestricted):
        return rows
    if isinstance(entity_filter, ByEntityIds):
        return await resolver.filter_in_scope(rows, entity_filter, key=key)
    if isinstance(entity_filter, BySelfStaffId):
        if staff_attr is None:
            return rows
        return [r for r in rows if str(getattr(r, staff_attr, "")) == entity_filter.staff_user_id]
    assert_never(entity_filter)
