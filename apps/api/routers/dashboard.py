"""Dashboard statistics router."""

from fastapi import APIRouter, Depends

from database import Database, get_database
from routers.auth_scope import AuthContext, get_auth_context
from services.dashboard import get_dashboard_stats

router = APIRouter()


@router.get("/dashboard/stats")
async def dashboard_stats(
    _auth: AuthContext = Depends(get_auth_context),
    database: Database = Depends(get_database),
):
    return await get_dashboard_stats(database.session_maker)
