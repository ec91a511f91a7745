# This project was developed with assistance from AI tools.
"""Entity hierarchy resolution: activity -> subproject -> project.

A ``HierarchyResolver`` lives for one request. It memoizes parent links so
that resolving many rows against the same scope costs at most one query
per level (one for activities, one for subprojects), however many rows
are involved. Nothing is shared across requests.

Anything that cannot be placed (missing row, unknown entity type, or a
row that sits above the scope level) is reported as ``None`` and callers
treat it as out of scope.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pms_db import Activity, Subproject
from pms_db.enums import EntityType
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import ByEntityIds

logger = logging.getLogger(__name__)

T = TypeVar("T")

EntityRef = tuple[Any, Any]


def entity_ref(row: Any) -> EntityRef:
    """Default key: ``(entity_id, entity_type)`` attributes of an ORM row."""
    return row.entity_id, row.entity_type


class HierarchyResolver:
    """Request-scoped resolver with parent-link memoization.

    The session is used sequentially; an ``AsyncSession`` does not support
    concurrent statements, so batching replaces per-row round trips.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        # child id -> parent id, or None when the child row does not exist
        self._activity_parent: dict[str, str | None] = {}
        self._subproject_parent: dict[str, str | None] = {}

    # -- single lookups ------------------------------------------------------

    async def _subproject_project(self, subproject_id: str) -> str | None:
        if subproject_id not in self._subproject_parent:
            stmt = select(Subproject.project_id).where(Subproject.id == subproject_id)
            project_id = (await self.session.execute(stmt)).scalar_one_or_none()
            self._subproject_parent[subproject_id] = str(project_id) if project_id else None
        return self._subproject_parent[subproject_id]

    async def _activity_subproject(self, activity_id: str) -> str | None:
        if activity_id not in self._activity_parent:
            stmt = select(Activity.subproject_id).where(Activity.id == activity_id)
            subproject_id = (await self.session.execute(stmt)).scalar_one_or_none()
            self._activity_parent[activity_id] = str(subproject_id) if subproject_id else None
        return self._activity_parent[activity_id]

    async def resolve_owning_project(self, entity_id: Any, entity_type: Any) -> str | None:
        """Return the project that owns the entity, or None if it cannot be placed.

        project -> itself; subproject -> one hop; activity -> two hops.
        """
        return await self.resolve_to_level(entity_id, entity_type, EntityType.PROJECT)

    async def resolve_to_level(self, entity_id: Any, entity_type: Any, level: EntityType) -> str | None:
        """Walk up the chain from the entity until ``level`` is reached."""
        etype = EntityType.parse(entity_type)
        if etype is None or entity_id is None:
            logger.debug("Unknown entity type %r for %s", entity_type, entity_id)
            return None
        eid = str(entity_id)

        if etype == level:
            return eid
        if etype == EntityType.PROJECT:
            # A project cannot be placed below itself.
            return None

        if etype == EntityType.ACTIVITY:
            subproject_id = await self._activity_subproject(eid)
            if subproject_id is None or level == EntityType.SUBPROJECT:
                return subproject_id
            return await self._subproject_project(subproject_id)

        # etype is SUBPROJECT and level is PROJECT
        return await self._subproject_project(eid)

    # -- batched lookups -----------------------------------------------------

    async def prime(self, refs: Iterable[EntityRef], level: EntityType = EntityType.PROJECT) -> None:
        """Load every parent link needed to lift ``refs`` to ``level``.

        Issues at most one activity query and one subproject query.
        """
        activity_ids: set[str] = set()
        subproject_ids: set[str] = set()
        for entity_id, entity_type in refs:
            etype = EntityType.parse(entity_type)
            if entity_id is None:
                continue
            if etype == EntityType.ACTIVITY:
                activity_ids.add(str(entity_id))
            elif etype == EntityType.SUBPROJECT:
                subproject_ids.add(str(entity_id))

        missing_activities = activity_ids - self._activity_parent.keys()
        if missing_activities:
            stmt = select(Activity.id, Activity.subproject_id).where(Activity.id.in_(sorted(missing_activities)))
            found = {str(a_id): str(s_id) for a_id, s_id in (await self.session.execute(stmt)).all()}
            for activity_id in missing_activities:
                self._activity_parent[activity_id] = found.get(activity_id)

        if level != EntityType.PROJECT:
            return

        for activity_id in activity_ids:
            parent = self._activity_parent.get(activity_id)
            if parent is not None:
                subproject_ids.add(parent)

        missing_subprojects = subproject_ids - self._subproject_parent.keys()
        if missing_subprojects:
            stmt = select(Subproject.id, Subproject.project_id).where(Subproject.id.in_(sorted(missing_subprojects)))
            found = {str(s_id): str(p_id) for s_id, p_id in (await self.session.execute(stmt)).all()}
            for subproject_id in missing_subprojects:
                self._subproject_parent[subproject_id] = found.get(subproject_id)

    # -- membership ----------------------------------------------------------

    async def is_in_scope(self, entity_id: Any, entity_type: Any, entity_filter: ByEntityIds) -> bool:
        """True iff the entity resolves to an id inside the filter's set."""
        if not entity_filter.ids:
            return False
        resolved = await self.resolve_to_level(entity_id, entity_type, entity_filter.level)
        if resolved is None:
            logger.debug("Entity %s (%s) cannot be placed at %s level", entity_id, entity_type, entity_filter.level.value)
            return False
        return resolved in entity_filter.ids

    async def filter_in_scope(
        self,
        rows: Iterable[T],
        entity_filter: ByEntityIds,
        key: Callable[[T], EntityRef] = entity_ref,
    ) -> list[T]:
        """Keep the rows whose entity falls inside ``entity_filter``.

        Parent links for the whole collection are loaded up front, so the
        per-row checks below are served from the memo.
        """
        rows = list(rows)
        if not rows or not entity_filter.ids:
            return []
        await self.prime((key(row) for row in rows), entity_filter.level)
        kept = []
        for row in rows:
            entity_id, entity_type = key(row)
            if await self.is_in_scope(entity_id, entity_type, entity_filter):
                kept.append(row)
        return kept
