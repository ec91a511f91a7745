# This project was developed with assistance from AI tools.
"""Role resolution for the current principal.

Fails toward *no access*: any error while loading roles yields an empty
set, which the scope calculator maps to ``ByEntityIds(empty)``.
"""

import logging
from collections.abc import Iterable

from pms_db import Role, UserRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import normalize_role_names

logger = logging.getLogger(__name__)


async def load_role_names(session: AsyncSession, user_id: str) -> frozenset[str]:
    """Load role names for a user by joining user_roles to roles."""
    stmt = (
        select(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
    )
    result = await session.execute(stmt)
    return normalize_role_names(result.scalars().all())


async def resolve_roles(
    session: AsyncSession,
    user_id: str,
    cached: Iterable | None = None,
) -> frozenset[str]:
    """Return the principal's role names.

    Args:
        session: Database session used for the fallback lookup.
        user_id: Authenticated principal id.
        cached: Role list already attached to the request (token claim or
            upstream middleware). Used as-is when non-empty.

    Returns:
        Set of role names; empty when the principal has none or the lookup
        failed.
    """
    names = normalize_role_names(cached)
    if names:
        return names

    try:
        return await load_role_names(session, user_id)
    except Exception:
        logger.exception("Role lookup failed for user %s, falling back to no roles", user_id)
        return frozenset()
