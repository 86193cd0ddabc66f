"""
Hotel room routes.
"""

from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.guest import Guest
from models.hotel import Hotel
from models.room import Room
from routers.auth_scope import AuthContext, get_audit_recorder, get_auth_context
from services.audit import AuditRecorder
from services.errors import ConflictError, NotFoundError
from services.reconciliation import reconcile_room_guests
from services.receipts import format_money
from services.singletons import SINGLETON_ID
from services.tracking import stamp_created, stamp_modified
from services.validation import parse_amount, parse_count, require_fields

router = APIRouter()


class RoomRequest(BaseModel):
    nombre: Optional[str] = None
    precio: Optional[Union[float, str]] = None
    capacidad: Optional[Union[int, float, str]] = None
    cupos_disponibles: Optional[Union[int, float, str]] = None


class RoomResponse(BaseModel):
    id: int
    hotel_id: Optional[int] = None
    nombre: str
    precio: float
    capacidad: int
    cupos_disponibles: int
    invitados_asignados: int = 0


def _room_response(room: Room, assigned: int = 0) -> RoomResponse:
    return RoomResponse(
        id=room.id,
        hotel_id=room.hotel_id,
        nombre=room.nombre,
        precio=float(room.precio),
        capacidad=room.capacidad,
        cupos_disponibles=room.cupos_disponibles,
        invitados_asignados=assigned,
    )


def _room_values(request: RoomRequest) -> dict:
    data = request.model_dump()
    require_fields(
        data,
        ("nombre", "precio", "capacidad", "cupos_disponibles"),
        "Nombre, precio, capacidad y cupos disponibles son requeridos",
    )
    return {
        "nombre": str(data["nombre"]).strip(),
        "precio": parse_amount(data["precio"], "El precio", allow_zero=True),
        "capacidad": parse_count(data["capacidad"], "La capacidad"),
        "cupos_disponibles": parse_count(data["cupos_disponibles"], "Los cupos disponibles"),
    }


async def _get_room(db: AsyncSession, room_id: int) -> Room:
    room = await db.get(Room, room_id)
    if not room:
        raise NotFoundError("Habitación no encontrada")
    return room


async def _assigned_guests(db: AsyncSession, room_id: int) -> int:
    result = await db.execute(select(func.count(Guest.id)).where(Guest.habitacion_id == room_id))
    return int(result.scalar() or 0)


@router.get("/habitaciones", response_model=List[RoomResponse])
async def list_rooms(
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    assigned = (
        select(Guest.habitacion_id.label("habitacion_id"), func.count(Guest.id).label("total"))
        .where(Guest.habitacion_id.isnot(None))
        .group_by(Guest.habitacion_id)
        .subquery()
    )
    result = await db.execute(
        select(Room, assigned.c.total)
        .outerjoin(assigned, assigned.c.habitacion_id == Room.id)
        .order_by(Room.nombre)
    )
    return [_room_response(room, int(total or 0)) for room, total in result.all()]


@router.post("/habitaciones", response_model=RoomResponse)
async def create_room(
    request: RoomRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    values = _room_values(request)
    hotel = await db.get(Hotel, SINGLETON_ID)
    room = Room(hotel_id=hotel.id if hotel else None, **values)
    stamp_created(room, auth.user_id, auth.email)
    db.add(room)
    await db.commit()
    await db.refresh(room)

    audit.submit(
        "habitaciones",
        "CREATE",
        f"Habitación creada: {room.nombre} - Precio: {format_money(room.precio)} - Capacidad: {room.capacidad}",
        auth.user_id,
        auth.email,
    )
    return _room_response(room)


@router.put("/habitaciones/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: int,
    request: RoomRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Update a room; a price change re-reconciles every guest assigned to it."""
    values = _room_values(request)
    room = await _get_room(db, room_id)
    price_changed = room.precio is None or values["precio"] != room.precio
    for field, value in values.items():
        setattr(room, field, value)
    stamp_modified(room, auth.user_id, auth.email)
    await db.flush()
    if price_changed:
        await reconcile_room_guests(db, room.id)
    await db.commit()
    await db.refresh(room)

    audit.submit(
        "habitaciones",
        "UPDATE",
        f"Habitación actualizada: {room.nombre} - Precio: {format_money(room.precio)} - Capacidad: {room.capacidad}",
        auth.user_id,
        auth.email,
    )
    return _room_response(room, await _assigned_guests(db, room.id))


@router.delete("/habitaciones/{room_id}")
async def delete_room(
    room_id: int,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Delete a room that has no guests assigned."""
    room = await _get_room(db, room_id)
    if await _assigned_guests(db, room.id) > 0:
        raise ConflictError("No se puede eliminar la habitación porque tiene invitados asignados")

    room_name = room.nombre
    await db.execute(delete(Room).where(Room.id == room.id))
    await db.commit()

    audit.submit("habitaciones", "DELETE", f"Habitación eliminada: {room_name}", auth.user_id, auth.email)
    return {"message": "Habitación eliminada exitosamente", "changes": 1}
