"""Payment status reconciliation.

A guest's payment status is derived data: it is recomputed from the assigned
room price and the sum of the guest's payments, and the result is written back
to ``invitados.estado_pago`` so plain reads stay close to the truth.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.guest import Guest
from models.payment import Payment
from models.room import Room
from services.errors import NotFoundError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


class PaymentStatus(str, Enum):
    PAID = "Pagado"
    PARTIAL = "Parcial"
    PENDING = "Pendiente"


@dataclass(frozen=True)
class Reconciliation:
    status: PaymentStatus
    pending_balance: Decimal
    total_paid: Decimal
    room_price: Optional[Decimal] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "estado_pago": self.status.value,
            "saldo_pendiente": float(self.pending_balance),
            "total_pagado": float(self.total_paid),
            "habitacion_precio": float(self.room_price) if self.room_price is not None else None,
        }


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def calculate_payment_status(room_price: Any, total_paid: Any) -> Reconciliation:
    """Derive status and pending balance.

    A guest without a room (``room_price`` is None) stays Pendiente with no
    balance. Overpayment is clamped to a zero balance and counts as Pagado.
    """
    paid = to_decimal(total_paid)
    if room_price is None:
        return Reconciliation(status=PaymentStatus.PENDING, pending_balance=ZERO, total_paid=paid)

    price = to_decimal(room_price)
    remaining = price - paid
    if remaining <= ZERO:
        status = PaymentStatus.PAID
    elif paid > ZERO:
        status = PaymentStatus.PARTIAL
    else:
        status = PaymentStatus.PENDING
    return Reconciliation(
        status=status,
        pending_balance=max(ZERO, remaining),
        total_paid=paid,
        room_price=price,
    )


async def get_total_paid(db: AsyncSession, guest_id: int) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.monto), 0)).where(Payment.invitado_id == guest_id)
    )
    return to_decimal(result.scalar())


async def reconcile_guest(db: AsyncSession, guest_id: int) -> Reconciliation:
    """Recompute one guest's status and persist it (flushed, not committed)."""
    result = await db.execute(
        select(Guest, Room.precio)
        .outerjoin(Room, Guest.habitacion_id == Room.id)
        .where(Guest.id == guest_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Invitado no encontrado")
    guest, room_price = row

    total_paid = await get_total_paid(db, guest_id)
    reconciliation = calculate_payment_status(room_price, total_paid)
    if guest.estado_pago != reconciliation.status.value:
        guest.estado_pago = reconciliation.status.value
        await db.flush()
    return reconciliation


async def reconcile_all(db: AsyncSession) -> Dict[int, Reconciliation]:
    """Recompute every guest in a single aggregate query and refresh stale statuses."""
    paid_totals = (
        select(Payment.invitado_id.label("invitado_id"), func.sum(Payment.monto).label("total_pagado"))
        .group_by(Payment.invitado_id)
        .subquery()
    )
    result = await db.execute(
        select(Guest, Room.precio, paid_totals.c.total_pagado)
        .outerjoin(Room, Guest.habitacion_id == Room.id)
        .outerjoin(paid_totals, paid_totals.c.invitado_id == Guest.id)
    )

    reconciled: Dict[int, Reconciliation] = {}
    stale = 0
    for guest, room_price, total_paid in result.all():
        reconciliation = calculate_payment_status(room_price, total_paid)
        reconciled[guest.id] = reconciliation
        if guest.estado_pago != reconciliation.status.value:
            guest.estado_pago = reconciliation.status.value
            stale += 1

    if stale:
        logger.info("Refreshed cached payment status for %s guests", stale)
        await db.flush()
    return reconciled


async def reconcile_room_guests(db: AsyncSession, room_id: int) -> Dict[int, Reconciliation]:
    """Re-run reconciliation for every guest assigned to a room."""
    result = await db.execute(select(Guest.id).where(Guest.habitacion_id == room_id))
    return {guest_id: await reconcile_guest(db, guest_id) for guest_id in result.scalars().all()}
