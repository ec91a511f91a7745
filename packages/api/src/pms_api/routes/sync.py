# This project was developed with assistance from AI tools.
"""Offline sync pull."""

from fastapi import APIRouter, Depends, Request
from pms_db import get_db
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import Access
from ..middleware.pii import mark_pii_access
from ..schemas.sync import SyncPullRequest, SyncPullResponse
from ..services import sync as sync_service

router = APIRouter()


@router.post("/pull", response_model=SyncPullResponse, response_model_by_alias=True)
async def pull(
    body: SyncPullRequest,
    request: Request,
    access: Access,
    session: AsyncSession = Depends(get_db),
) -> SyncPullResponse:
    """Return a role-scoped snapshot for offline clients."""
    snapshot = await sync_service.pull(session, access, body)
    if "beneficiaries" in snapshot["data"]:
        mark_pii_access(request, snapshot["piiDecrypted"])
    return SyncPullResponse(
        snapshot_id=snapshot["snapshotId"],
        server_time=snapshot["serverTime"],
        data=snapshot["data"],
    )
