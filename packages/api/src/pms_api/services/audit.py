# This project was developed with assistance from AI tools.
"""Audit log service.

Writes append-only ``AuditLog`` rows inside the caller's transaction so an
audited read and its audit entry commit or roll back together.
"""

import json
import logging
from datetime import UTC, datetime

from pms_db import AuditLog
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def write_audit_log(
    session: AsyncSession,
    *,
    user_id: str | None,
    action: str,
    description: str,
    details: dict | None = None,
) -> AuditLog:
    """Add one audit entry and flush it.

    Args:
        session: Database session (the request's transaction).
        user_id: Principal who performed the action.
        action: Action tag, e.g. ``BENEFICIARY_PII_READ``.
        description: Human-readable summary.
        details: JSON-serializable payload, stored as text.

    Returns:
        The created AuditLog row.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        description=description,
        details=json.dumps(details, sort_keys=True, default=str) if details is not None else None,
        timestamp=datetime.now(UTC),
    )
    session.add(entry)
    await session.flush()
    logger.debug("Audit %s by %s", action, user_id)
    return entry
