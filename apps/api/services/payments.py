"""Payment recording and the guest/receipt views built on reconciliation."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.event_config import EventConfig
from models.guest import Guest
from models.hotel import Hotel
from models.payment import Payment
from models.room import Room
from services.errors import NotFoundError
from services.reconciliation import Reconciliation, reconcile_guest
from services.singletons import get_singleton
from services.tracking import stamp_created

logger = logging.getLogger(__name__)


async def get_guest_or_404(db: AsyncSession, guest_id: int) -> Guest:
    guest = await db.get(Guest, guest_id)
    if not guest:
        raise NotFoundError("Invitado no encontrado")
    return guest


async def record_payment(
    db: AsyncSession,
    guest_id: int,
    amount: Decimal,
    method: str,
    payment_date: str,
    user_id: Optional[int] = None,
    user_email: Optional[str] = None,
) -> Tuple[Payment, Reconciliation]:
    """Insert a payment, then reconcile the guest and store the balance snapshot.

    The payment row is committed before reconciliation runs; a reconciliation
    failure leaves the payment in place.
    """
    await get_guest_or_404(db, guest_id)
    payment = Payment(
        invitado_id=guest_id,
        monto=amount,
        metodo_pago=method,
        fecha_pago=payment_date,
        saldo_pendiente=Decimal("0"),
    )
    stamp_created(payment, user_id, user_email)
    db.add(payment)
    await db.commit()

    reconciliation = await reconcile_guest(db, guest_id)
    payment.saldo_pendiente = reconciliation.pending_balance
    await db.commit()
    await db.refresh(payment)
    return payment, reconciliation


async def list_guest_payments(db: AsyncSession, guest_id: int) -> List[Payment]:
    await get_guest_or_404(db, guest_id)
    result = await db.execute(
        select(Payment)
        .where(Payment.invitado_id == guest_id)
        .order_by(Payment.fecha_pago.desc(), Payment.id.desc())
    )
    return list(result.scalars().all())


async def guest_summary(db: AsyncSession, guest_id: int) -> Dict[str, Any]:
    """Guest fields plus freshly reconciled totals (flushes the refreshed status)."""
    reconciliation = await reconcile_guest(db, guest_id)
    result = await db.execute(
        select(Guest, Room.nombre)
        .outerjoin(Room, Guest.habitacion_id == Room.id)
        .where(Guest.id == guest_id)
    )
    guest, room_name = result.one()
    summary = {
        "id": guest.id,
        "nombre": guest.nombre,
        "contacto": guest.contacto,
        "habitacion_id": guest.habitacion_id,
        "habitacion_nombre": room_name,
        "total_a_pagar": float(reconciliation.room_price or 0),
    }
    summary.update(reconciliation.as_dict())
    return summary


def _row_dict(row: Optional[Any], fields: Tuple[str, ...]) -> Dict[str, Any]:
    if row is None:
        return {}
    return {field: getattr(row, field) for field in fields}


async def receipt_context(db: AsyncSession, payment: Payment) -> Dict[str, Dict[str, Any]]:
    """Collect the payment, guest, wedding and hotel data a receipt prints."""
    config = await get_singleton(db, EventConfig)
    hotel = await get_singleton(db, Hotel)
    return {
        "payment": {
            "id": payment.id,
            "monto": float(payment.monto),
            "metodo_pago": payment.metodo_pago,
            "fecha_pago": payment.fecha_pago,
        },
        "guest": await guest_summary(db, payment.invitado_id),
        "config": _row_dict(config, ("nombre_novia", "nombre_novio", "fecha_boda", "hora_boda", "lugar_boda")),
        "hotel": _row_dict(hotel, ("nombre", "direccion", "servicios_incluidos")),
    }
