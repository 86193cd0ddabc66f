"""
Wedding configuration, cover image and hotel routes.

Configuration and hotel are single-row resources: POST replaces the current
values in place.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from database import get_db
from models.event_config import EventConfig
from models.hotel import Hotel
from routers.auth_scope import AuthContext, get_audit_recorder, get_auth_context, get_settings
from services.audit import AuditRecorder
from services.errors import ValidationError
from services.singletons import get_singleton, upsert_singleton
from services.uploads import UPLOADS_URL_PREFIX, save_cover_image
from services.validation import parse_iso_date, parse_time, require_fields

router = APIRouter()


class EventConfigRequest(BaseModel):
    nombre_novia: Optional[str] = None
    nombre_novio: Optional[str] = None
    fecha_boda: Optional[str] = None
    hora_boda: Optional[str] = None
    lugar_boda: Optional[str] = None
    imagen_portada: Optional[str] = None


class EventConfigResponse(BaseModel):
    id: int
    nombre_novia: str
    nombre_novio: str
    fecha_boda: str
    hora_boda: str
    lugar_boda: str
    imagen_portada: Optional[str] = None


class HotelRequest(BaseModel):
    nombre: Optional[str] = None
    direccion: Optional[str] = None
    servicios_incluidos: Optional[List[str]] = None


class HotelResponse(BaseModel):
    id: int
    nombre: str
    direccion: str
    servicios_incluidos: List[str] = []


class CoverUploadResponse(BaseModel):
    success: bool
    fileName: str
    filePath: str
    message: str


def _config_response(row: EventConfig) -> EventConfigResponse:
    return EventConfigResponse(
        id=row.id,
        nombre_novia=row.nombre_novia,
        nombre_novio=row.nombre_novio,
        fecha_boda=row.fecha_boda,
        hora_boda=row.hora_boda,
        lugar_boda=row.lugar_boda,
        imagen_portada=row.imagen_portada,
    )


def _hotel_response(row: Hotel) -> HotelResponse:
    return HotelResponse(
        id=row.id,
        nombre=row.nombre,
        direccion=row.direccion,
        servicios_incluidos=list(row.servicios_incluidos or []),
    )


@router.get("/configuracion")
async def get_configuration(
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Current wedding configuration, or an empty object when none was saved."""
    row = await get_singleton(db, EventConfig)
    return _config_response(row) if row else {}


@router.post("/configuracion", response_model=EventConfigResponse)
async def save_configuration(
    request: EventConfigRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    data = request.model_dump()
    require_fields(
        data,
        ("nombre_novia", "nombre_novio", "fecha_boda", "hora_boda", "lugar_boda"),
        "Todos los datos de la boda son requeridos",
    )
    values = {
        "nombre_novia": data["nombre_novia"].strip(),
        "nombre_novio": data["nombre_novio"].strip(),
        "fecha_boda": parse_iso_date(data["fecha_boda"], "La fecha de la boda"),
        "hora_boda": parse_time(data["hora_boda"], "La hora de la boda"),
        "lugar_boda": data["lugar_boda"].strip(),
        "imagen_portada": (data.get("imagen_portada") or None),
    }
    row, created = await upsert_singleton(db, EventConfig, values, auth.user_id, auth.email)
    await db.commit()

    audit.submit(
        "configuracion_boda",
        "CREATE" if created else "UPDATE",
        f"Configuración de boda actualizada: {row.nombre_novia} & {row.nombre_novio} - Fecha: {row.fecha_boda}",
        auth.user_id,
        auth.email,
    )
    return _config_response(row)


@router.post("/upload-portada", response_model=CoverUploadResponse)
async def upload_cover_image(
    imagen: Optional[UploadFile] = File(None),
    _auth: AuthContext = Depends(get_auth_context),
    app_settings: Settings = Depends(get_settings),
):
    """Store the wedding cover image; the returned path goes into ``imagen_portada``."""
    if imagen is None or not imagen.filename:
        raise ValidationError("No se ha subido ningún archivo")
    file_name = await save_cover_image(imagen, app_settings.UPLOAD_DIR, app_settings.MAX_COVER_IMAGE_BYTES)
    return CoverUploadResponse(
        success=True,
        fileName=file_name,
        filePath=f"{UPLOADS_URL_PREFIX}/{file_name}",
        message="Imagen subida exitosamente",
    )


@router.get("/hotel")
async def get_hotel(
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    row = await get_singleton(db, Hotel)
    return _hotel_response(row) if row else {}


@router.post("/hotel", response_model=HotelResponse)
async def save_hotel(
    request: HotelRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    data = request.model_dump()
    require_fields(data, ("nombre", "direccion"), "Nombre y dirección del hotel son requeridos")
    services = [item.strip() for item in (data.get("servicios_incluidos") or []) if item and item.strip()]
    row, created = await upsert_singleton(
        db,
        Hotel,
        {
            "nombre": data["nombre"].strip(),
            "direccion": data["direccion"].strip(),
            "servicios_incluidos": services,
        },
        auth.user_id,
        auth.email,
    )
    await db.commit()

    audit.submit(
        "hotel",
        "CREATE" if created else "UPDATE",
        f"Hotel configurado: {row.nombre} - Dirección: {row.direccion}",
        auth.user_id,
        auth.email,
    )
    return _hotel_response(row)
