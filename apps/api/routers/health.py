"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from database import Database, get_database

router = APIRouter()


@router.get("/health")
async def health_check(database: Database = Depends(get_database)):
    """
    Health check endpoint (no authentication).
    Reports whether the database answers a trivial query.
    """
    health_status = {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "unknown",
    }

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"

    return health_status
