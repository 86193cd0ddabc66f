"""
Payment and receipt routes.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import Settings
from database import get_db
from models.guest import Guest
from models.payment import Payment
from routers.auth_scope import AuthContext, get_audit_recorder, get_auth_context, get_settings
from services.audit import AuditRecorder
from services.errors import NotFoundError, ValidationError
from services.payments import get_guest_or_404, receipt_context, record_payment
from services.receipts import format_money, render_receipt_async, resolve_receipt_path
from services.reconciliation import reconcile_all
from services.validation import parse_amount, parse_iso_date, require_fields

router = APIRouter()
logger = logging.getLogger(__name__)


class PaymentRequest(BaseModel):
    invitado_id: Optional[Union[int, str]] = None
    monto: Optional[Union[float, str]] = None
    metodo_pago: Optional[str] = None
    fecha_pago: Optional[str] = None


class RegenerateReceiptRequest(BaseModel):
    pagoId: Optional[int] = None


class PaymentListItem(BaseModel):
    id: int
    invitado_id: int
    invitado_nombre: Optional[str] = None
    monto: float
    metodo_pago: str
    fecha_pago: str
    saldo_pendiente: float
    habitacion_precio: Optional[float] = None
    saldo_actual: float


class PaymentCreatedResponse(BaseModel):
    id: int
    invitado_id: int
    estado_pago: str
    saldo_pendiente: float
    total_pagado: float
    recibo: Optional[Dict[str, str]] = None


class ReceiptResponse(BaseModel):
    recibo: Dict[str, str]


async def _render_receipt(db: AsyncSession, payment: Payment, receipts_dir: str) -> Dict[str, Any]:
    context = await receipt_context(db, payment)
    await db.commit()
    info = await render_receipt_async(
        receipts_dir,
        context["payment"],
        context["guest"],
        context["config"],
        context["hotel"],
    )
    return info.as_dict()


@router.get("/pagos", response_model=List[PaymentListItem])
async def list_payments(
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """All payments, newest payment date first, with each guest's current balance."""
    reconciled = await reconcile_all(db)
    await db.commit()

    result = await db.execute(
        select(Payment, Guest.nombre)
        .outerjoin(Guest, Payment.invitado_id == Guest.id)
        .order_by(Payment.fecha_pago.desc(), Payment.id.desc())
    )
    items = []
    for payment, guest_name in result.all():
        reconciliation = reconciled.get(payment.invitado_id)
        items.append(
            PaymentListItem(
                id=payment.id,
                invitado_id=payment.invitado_id,
                invitado_nombre=guest_name,
                monto=float(payment.monto),
                metodo_pago=payment.metodo_pago,
                fecha_pago=payment.fecha_pago,
                saldo_pendiente=float(payment.saldo_pendiente or 0),
                habitacion_precio=(
                    float(reconciliation.room_price)
                    if reconciliation and reconciliation.room_price is not None
                    else None
                ),
                saldo_actual=float(reconciliation.pending_balance) if reconciliation else 0.0,
            )
        )
    return items


@router.post("/pagos", response_model=PaymentCreatedResponse)
async def create_payment(
    request: PaymentRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
    app_settings: Settings = Depends(get_settings),
):
    """Record a payment, reconcile the guest, audit it and issue a receipt."""
    data = request.model_dump()
    require_fields(
        data,
        ("invitado_id", "monto", "metodo_pago", "fecha_pago"),
        "Invitado, monto, método y fecha de pago son requeridos",
    )
    try:
        guest_id = int(data["invitado_id"])
    except (TypeError, ValueError) as exc:
        raise ValidationError("El invitado seleccionado no es válido") from exc
    amount = parse_amount(data["monto"], "El monto")
    payment_date = parse_iso_date(data["fecha_pago"], "La fecha de pago")
    method = data["metodo_pago"].strip()

    guest = await get_guest_or_404(db, guest_id)
    guest_name = guest.nombre
    payment, reconciliation = await record_payment(
        db, guest_id, amount, method, payment_date, auth.user_id, auth.email
    )

    audit.submit(
        "pagos",
        "CREATE",
        f"Pago registrado para {guest_name} - Monto: {format_money(amount)} - Método: {method}",
        auth.user_id,
        auth.email,
    )

    receipt = None
    try:
        receipt = await _render_receipt(db, payment, app_settings.RECEIPTS_DIR)
    except Exception:
        logger.exception("Error generating receipt for payment %s", payment.id)

    return PaymentCreatedResponse(
        id=payment.id,
        invitado_id=guest_id,
        estado_pago=reconciliation.status.value,
        saldo_pendiente=float(reconciliation.pending_balance),
        total_pagado=float(reconciliation.total_paid),
        recibo=receipt,
    )


@router.post("/pagos/regenerar-recibo", response_model=ReceiptResponse)
async def regenerate_receipt(
    request: RegenerateReceiptRequest,
    _auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    if request.pagoId is None:
        raise ValidationError("El identificador del pago es requerido")
    payment = await db.get(Payment, request.pagoId)
    if not payment:
        raise NotFoundError("Pago no encontrado")
    return ReceiptResponse(recibo=await _render_receipt(db, payment, app_settings.RECEIPTS_DIR))


@router.get("/recibos/{file_name}")
async def download_receipt(
    file_name: str,
    _auth: AuthContext = Depends(get_auth_context),
    app_settings: Settings = Depends(get_settings),
):
    path = resolve_receipt_path(app_settings.RECEIPTS_DIR, file_name)
    if path is None:
        raise NotFoundError("Recibo no encontrado")
    return FileResponse(path, media_type="application/pdf", filename=file_name)
