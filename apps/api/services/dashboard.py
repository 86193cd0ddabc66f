"""Aggregate statistics for the dashboard landing page."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.future import select

from models.guest import Guest
from models.payment import Payment
from models.room import Room
from services.reconciliation import PaymentStatus, calculate_payment_status, to_decimal


async def _scalar(session_maker: async_sessionmaker, statement) -> Any:
    async with session_maker() as session:
        result = await session.execute(statement)
        return result.scalar()


async def _guest_balances(session_maker: async_sessionmaker) -> List[Tuple[Any, Any]]:
    paid_totals = (
        select(Payment.invitado_id.label("invitado_id"), func.sum(Payment.monto).label("total_pagado"))
        .group_by(Payment.invitado_id)
        .subquery()
    )
    async with session_maker() as session:
        result = await session.execute(
            select(Room.precio, paid_totals.c.total_pagado)
            .select_from(Guest)
            .outerjoin(Room, Guest.habitacion_id == Room.id)
            .outerjoin(paid_totals, paid_totals.c.invitado_id == Guest.id)
        )
        return [tuple(row) for row in result.all()]


async def get_dashboard_stats(session_maker: async_sessionmaker) -> Dict[str, Any]:
    """Run the independent aggregate queries concurrently, each on its own session."""
    balances, total_collected, total_slots, assigned_guests = await asyncio.gather(
        _guest_balances(session_maker),
        _scalar(session_maker, select(func.coalesce(func.sum(Payment.monto), 0))),
        _scalar(session_maker, select(func.coalesce(func.sum(Room.cupos_disponibles), 0))),
        _scalar(session_maker, select(func.count(Guest.id)).where(Guest.habitacion_id.isnot(None))),
    )

    counts = {status: 0 for status in PaymentStatus}
    total_pending = Decimal("0")
    for room_price, total_paid in balances:
        reconciliation = calculate_payment_status(room_price, total_paid)
        counts[reconciliation.status] += 1
        total_pending += reconciliation.pending_balance

    total_slots = int(total_slots or 0)
    occupancy = round(int(assigned_guests or 0) / total_slots * 100) if total_slots > 0 else 0

    return {
        "totalInvitados": len(balances),
        "ocupacionHotel": occupancy,
        "totalRecaudado": float(to_decimal(total_collected)),
        "totalPendiente": float(total_pending),
        "invitadosPagados": counts[PaymentStatus.PAID],
        "invitadosParciales": counts[PaymentStatus.PARTIAL],
        "invitadosPendientes": counts[PaymentStatus.PENDING],
    }
