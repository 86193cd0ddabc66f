"""
Audit trail router.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from database import get_db
from routers.auth_scope import AuthContext, get_auth_context, get_settings
from services.audit import list_audit_entries, list_tracked_activity

router = APIRouter()
logger = logging.getLogger(__name__)


class AuditEntryResponse(BaseModel):
    id: int
    tabla: str
    accion: str
    descripcion: Optional[str] = None
    usuario_id: Optional[int] = None
    usuario_email: Optional[str] = None
    fecha: Optional[datetime] = None


def _entry_response(entry) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        tabla=entry.tabla,
        accion=entry.accion,
        descripcion=entry.descripcion,
        usuario_id=entry.usuario_id,
        usuario_email=entry.usuario_email,
        fecha=entry.fecha,
    )


@router.get("/auditoria", response_model=List[AuditEntryResponse])
async def list_audit_trail(
    limit: Optional[int] = Query(default=None, ge=1),
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    """Most recent audit entries first, capped at ``AUDIT_LOG_LIMIT``.

    When the audit table cannot be read, the per-row creator/modifier
    columns are used instead.
    """
    cap = app_settings.AUDIT_LOG_LIMIT
    limit = min(limit or cap, cap)
    try:
        entries = await list_audit_entries(db, limit)
    except SQLAlchemyError:
        logger.exception("Error reading audit table; falling back to row tracking columns")
        await db.rollback()
        entries = await list_tracked_activity(db, limit)
    return [_entry_response(entry) for entry in entries]
