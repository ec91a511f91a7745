# This project was developed with assistance from AI tools.
"""Liveness and database health."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pms_db import DatabaseService, get_db_service

router = APIRouter()


@router.get("/")
async def health(db: DatabaseService = Depends(get_db_service)) -> JSONResponse:
    """Report API liveness and database connectivity."""
    database = await db.health_check()
    healthy = database.get("status") == "healthy"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "healthy" if healthy else "degraded", "database": database},
    )
