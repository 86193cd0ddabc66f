"""
Audit trail recorder.

Every create/update/delete on the wedding tables appends one ``auditoria`` row.
Writes are best-effort: they run in their own session, outside the request's
transaction, and a failure is logged and dropped so it can never turn a
successful business operation into an error.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from models.audit import AUDIT_ACTIONS, AuditEntry
from models.event_config import EventConfig
from models.guest import Guest
from models.hotel import Hotel
from models.payment import Payment
from models.room import Room
from services.receipts import format_money

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Appends audit entries using a session factory it does not share with requests."""

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker
        self._pending: Set[asyncio.Task] = set()

    async def record(
        self,
        tabla: str,
        accion: str,
        descripcion: str,
        usuario_id: Optional[int],
        usuario_email: Optional[str],
    ) -> bool:
        """Insert one audit entry. Never raises; returns whether the row was written."""
        try:
            if accion not in AUDIT_ACTIONS:
                raise ValueError(f"Unsupported audit action: {accion}")
            async with self._session_maker() as session:
                session.add(
                    AuditEntry(
                        tabla=tabla,
                        accion=accion,
                        descripcion=descripcion,
                        usuario_id=usuario_id,
                        usuario_email=usuario_email,
                    )
                )
                await session.commit()
            return True
        except Exception:
            logger.exception("Error registrando auditoría: %s %s (%s)", accion, tabla, descripcion)
            return False

    def submit(
        self,
        tabla: str,
        accion: str,
        descripcion: str,
        usuario_id: Optional[int],
        usuario_email: Optional[str],
    ) -> asyncio.Task:
        """Schedule ``record`` without waiting for it."""
        task = asyncio.create_task(self.record(tabla, accion, descripcion, usuario_id, usuario_email))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled audit write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


async def list_audit_entries(db: AsyncSession, limit: int = 500) -> List[AuditEntry]:
    """Most recent entries first."""
    result = await db.execute(
        select(AuditEntry)
        .order_by(AuditEntry.fecha.desc(), AuditEntry.id.desc())
        .limit(max(int(limit), 1))
    )
    return list(result.scalars().all())


@dataclass(frozen=True)
class TrackedActivity:
    """An audit-shaped view of one row's creator/modifier columns."""

    id: int
    tabla: str
    accion: str
    descripcion: str
    usuario_id: Optional[int]
    usuario_email: Optional[str]
    fecha: Optional[datetime]


_TRACKED_TABLES: Tuple[Tuple[Type, str, Callable[[object], str]], ...] = (
    (EventConfig, "UPDATE", lambda row: "Configuración de boda actualizada"),
    (Hotel, "UPDATE", lambda row: f"Información del hotel actualizada: {row.nombre}"),
    (Room, "UPDATE", lambda row: f"Habitación actualizada: {row.nombre}"),
    (Guest, "UPDATE", lambda row: f"Invitado gestionado: {row.nombre}"),
    (Payment, "CREATE", lambda row: f"Pago registrado: {format_money(row.monto)} ({row.metodo_pago})"),
)


async def list_tracked_activity(db: AsyncSession, limit: int = 500) -> List[TrackedActivity]:
    """Rebuild recent activity from the creator/modifier columns of each table.

    Used when the ``auditoria`` table cannot be read. Only the latest change
    per row survives, so this is a coarser view than the audit trail.
    """
    activity: List[TrackedActivity] = []
    for model, action, describe in _TRACKED_TABLES:
        result = await db.execute(
            select(model).where((model.creado_por.isnot(None)) | (model.modificado_por.isnot(None)))
        )
        for row in result.scalars().all():
            modified = row.modificado_por is not None
            activity.append(
                TrackedActivity(
                    id=row.id,
                    tabla=model.__tablename__,
                    accion=action,
                    descripcion=describe(row),
                    usuario_id=row.modificado_por if modified else row.creado_por,
                    usuario_email=row.modificado_por_email if modified else row.creado_por_email,
                    fecha=row.fecha_modificacion or row.fecha_creacion,
                )
            )

    activity.sort(key=lambda item: item.fecha.timestamp() if item.fecha else 0.0, reverse=True)
    return activity[: max(int(limit), 1)]
