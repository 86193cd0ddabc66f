"""
Guest routes.

Every read re-aggregates payments so ``estado_pago`` and ``saldo_pendiente``
always reflect the current payment history.
"""

from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.guest import Guest
from models.payment import Payment
from models.room import Room
from routers.auth_scope import AuthContext, get_audit_recorder, get_auth_context
from services.audit import AuditRecorder
from services.errors import NotFoundError, ValidationError
from services.payments import get_guest_or_404, guest_summary, list_guest_payments
from services.reconciliation import reconcile_all, reconcile_guest
from services.tracking import stamp_created, stamp_modified
from services.validation import require_fields

router = APIRouter()


class GuestRequest(BaseModel):
    nombre: Optional[str] = None
    contacto: Optional[str] = None
    habitacion_id: Optional[Union[int, str]] = None


class GuestResponse(BaseModel):
    id: int
    nombre: str
    contacto: str
    habitacion_id: Optional[int] = None
    habitacion_nombre: Optional[str] = None
    habitacion_precio: Optional[float] = None
    estado_pago: str
    total_pagado: float
    saldo_pendiente: float


class GuestPaymentResponse(BaseModel):
    id: int
    invitado_id: int
    monto: float
    metodo_pago: str
    fecha_pago: str
    saldo_pendiente: float


async def _guest_values(db: AsyncSession, request: GuestRequest) -> dict:
    data = request.model_dump()
    require_fields(data, ("nombre", "contacto"), "Nombre y contacto son requeridos")

    room_id = data.get("habitacion_id")
    if room_id in (None, ""):
        room_id = None
    else:
        try:
            room_id = int(room_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError("La habitación seleccionada no es válida") from exc
        if not await db.get(Room, room_id):
            raise NotFoundError("Habitación no encontrada")

    return {
        "nombre": data["nombre"].strip(),
        "contacto": data["contacto"].strip(),
        "habitacion_id": room_id,
    }


async def _guest_response(db: AsyncSession, guest_id: int) -> GuestResponse:
    return GuestResponse(**await guest_summary(db, guest_id))


@router.get("/invitados", response_model=List[GuestResponse])
async def list_guests(
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    reconciled = await reconcile_all(db)
    await db.commit()

    result = await db.execute(
        select(Guest, Room.nombre)
        .outerjoin(Room, Guest.habitacion_id == Room.id)
        .order_by(Guest.nombre, Guest.id)
    )
    guests = []
    for guest, room_name in result.all():
        reconciliation = reconciled.get(guest.id)
        if reconciliation is None:
            # inserted after the aggregate pass
            reconciliation = await reconcile_guest(db, guest.id)
        guests.append(
            GuestResponse(
                id=guest.id,
                nombre=guest.nombre,
                contacto=guest.contacto,
                habitacion_id=guest.habitacion_id,
                habitacion_nombre=room_name,
                **reconciliation.as_dict(),
            )
        )
    await db.commit()
    return guests


@router.get("/invitados/{guest_id}", response_model=GuestResponse)
async def get_guest(
    guest_id: int,
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    response = await _guest_response(db, guest_id)
    await db.commit()
    return response


@router.post("/invitados", response_model=GuestResponse)
async def create_guest(
    request: GuestRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    values = await _guest_values(db, request)
    guest = Guest(estado_pago="Pendiente", **values)
    stamp_created(guest, auth.user_id, auth.email)
    db.add(guest)
    await db.flush()
    await reconcile_guest(db, guest.id)
    await db.commit()

    audit.submit(
        "invitados",
        "CREATE",
        f"Invitado creado: {guest.nombre} - Contacto: {guest.contacto}",
        auth.user_id,
        auth.email,
    )
    return await _guest_response(db, guest.id)


@router.put("/invitados/{guest_id}", response_model=GuestResponse)
async def update_guest(
    guest_id: int,
    request: GuestRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    guest = await get_guest_or_404(db, guest_id)
    values = await _guest_values(db, request)
    for field, value in values.items():
        setattr(guest, field, value)
    stamp_modified(guest, auth.user_id, auth.email)
    await db.flush()
    await reconcile_guest(db, guest.id)
    await db.commit()

    audit.submit(
        "invitados",
        "UPDATE",
        f"Invitado actualizado: {guest.nombre} - Contacto: {guest.contacto}",
        auth.user_id,
        auth.email,
    )
    return await _guest_response(db, guest.id)


@router.delete("/invitados/{guest_id}")
async def delete_guest(
    guest_id: int,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Delete a guest together with their payments."""
    guest = await get_guest_or_404(db, guest_id)
    guest_name = guest.nombre
    await db.execute(delete(Payment).where(Payment.invitado_id == guest_id))
    await db.execute(delete(Guest).where(Guest.id == guest_id))
    await db.commit()

    audit.submit("invitados", "DELETE", f"Invitado eliminado: {guest_name}", auth.user_id, auth.email)
    return {"message": "Invitado eliminado exitosamente", "changes": 1}


@router.get("/invitados/{guest_id}/pagos", response_model=List[GuestPaymentResponse])
async def get_guest_payments(
    guest_id: int,
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    payments = await list_guest_payments(db, guest_id)
    return [
        GuestPaymentResponse(
            id=payment.id,
            invitado_id=payment.invitado_id,
            monto=float(payment.monto),
            metodo_pago=payment.metodo_pago,
            fecha_pago=payment.fecha_pago,
            saldo_pendiente=float(payment.saldo_pendiente or 0),
        )
        for payment in payments
    ]
