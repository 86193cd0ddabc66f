"""
Payment receipt rendering.

A receipt is a fixed sequence of labelled lines (wedding, hotel, guest,
payment details and a financial summary) drawn onto a single PDF page.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

PRIMARY_COLOR = "#D4AF37"
TEXT_COLOR = "#2D3748"
FOOTER_COLOR = "#666666"
RECEIPTS_URL_PREFIX = "/recibos"


@dataclass(frozen=True)
class ReceiptLine:
    kind: str  # title, subtitle, heading, text, highlight, footer
    text: str


@dataclass(frozen=True)
class ReceiptInfo:
    fileName: str
    filePath: str
    relativePath: str

    def as_dict(self) -> Dict[str, str]:
        return {"fileName": self.fileName, "filePath": self.filePath, "relativePath": self.relativePath}


def format_money(value: Any) -> str:
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        amount = 0.0
    return f"${amount:,.2f}"


def format_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    text = str(value or "").strip()
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").strftime("%d/%m/%Y")
    except ValueError:
        return text


def receipt_file_name(guest_name: str, timestamp_ms: Optional[int] = None) -> str:
    slug = re.sub(r"\s+", "_", (guest_name or "").strip())
    slug = re.sub(r"[^\w.-]", "", slug) or "invitado"
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"recibo_{slug}_{stamp}.pdf"


def build_receipt_lines(
    payment: Mapping[str, Any],
    guest: Mapping[str, Any],
    config: Mapping[str, Any],
    hotel: Mapping[str, Any],
) -> List[ReceiptLine]:
    lines = [
        ReceiptLine("title", "RECIBO DE PAGO"),
        ReceiptLine("subtitle", "Boda Suite"),
        ReceiptLine("heading", "INFORMACIÓN DE LA BODA"),
        ReceiptLine("text", f"Novios: {config.get('nombre_novio') or '-'} & {config.get('nombre_novia') or '-'}"),
        ReceiptLine("text", f"Fecha: {format_date(config.get('fecha_boda'))}"),
        ReceiptLine("text", f"Hora: {config.get('hora_boda') or ''}"),
        ReceiptLine("text", f"Lugar: {config.get('lugar_boda') or ''}"),
        ReceiptLine("heading", "INFORMACIÓN DEL HOTEL"),
        ReceiptLine("text", f"Hotel: {hotel.get('nombre') or ''}"),
        ReceiptLine("text", f"Dirección: {hotel.get('direccion') or ''}"),
    ]
    services = hotel.get("servicios_incluidos")
    if isinstance(services, str):
        services = [services] if services.strip() else []
    if services:
        lines.append(ReceiptLine("text", f"Servicios: {', '.join(str(item) for item in services)}"))

    lines += [
        ReceiptLine("heading", "INFORMACIÓN DEL INVITADO"),
        ReceiptLine("text", f"Nombre: {guest.get('nombre') or ''}"),
        ReceiptLine("text", f"Contacto: {guest.get('contacto') or ''}"),
    ]
    if guest.get("habitacion_nombre"):
        lines.append(ReceiptLine("text", f"Habitación: {guest['habitacion_nombre']}"))

    lines += [
        ReceiptLine("heading", "DETALLES DEL PAGO"),
        ReceiptLine("text", f"Fecha de Pago: {format_date(payment.get('fecha_pago'))}"),
        ReceiptLine("text", f"Método de Pago: {payment.get('metodo_pago') or ''}"),
        ReceiptLine("highlight", f"Monto Pagado: {format_money(payment.get('monto'))}"),
        ReceiptLine("text", f"Saldo Pendiente: {format_money(guest.get('saldo_pendiente'))}"),
        ReceiptLine("heading", "RESUMEN FINANCIERO"),
        ReceiptLine("text", f"Total a Pagar: {format_money(guest.get('total_a_pagar'))}"),
        ReceiptLine("text", f"Total Pagado: {format_money(guest.get('total_pagado'))}"),
        ReceiptLine("text", f"Saldo Pendiente: {format_money(guest.get('saldo_pendiente'))}"),
        ReceiptLine("footer", f"Recibo generado el {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}"),
        ReceiptLine("footer", "Este documento es un comprobante oficial de pago"),
    ]
    return lines


_STYLES = {
    "title": ("Helvetica-Bold", 24, PRIMARY_COLOR, 30),
    "subtitle": ("Helvetica", 16, TEXT_COLOR, 35),
    "heading": ("Helvetica-Bold", 14, PRIMARY_COLOR, 25),
    "text": ("Helvetica", 11, TEXT_COLOR, 15),
    "highlight": ("Helvetica-Bold", 12, PRIMARY_COLOR, 15),
    "footer": ("Helvetica", 8, FOOTER_COLOR, 15),
}


def _draw_pdf(path: Path, lines: List[ReceiptLine]) -> None:
    width, height = LETTER
    pdf = canvas.Canvas(str(path), pagesize=LETTER)
    y = height - 60
    previous_kind = None
    for line in lines:
        font, size, color, advance = _STYLES.get(line.kind, _STYLES["text"])
        if line.kind == "heading" or (line.kind == "footer" and previous_kind != "footer"):
            y -= 20
        pdf.setFont(font, size)
        pdf.setFillColor(HexColor(color))
        if line.kind in ("title", "subtitle", "footer"):
            pdf.drawCentredString(width / 2, y, line.text)
        else:
            pdf.drawString(50, y, line.text)
        if line.kind == "subtitle":
            pdf.setStrokeColor(HexColor(PRIMARY_COLOR))
            pdf.setLineWidth(2)
            pdf.line(50, y - 15, width - 50, y - 15)
        y -= advance
        previous_kind = line.kind
    pdf.showPage()
    pdf.save()


def render_receipt(
    receipts_dir: str,
    payment: Mapping[str, Any],
    guest: Mapping[str, Any],
    config: Mapping[str, Any],
    hotel: Mapping[str, Any],
) -> ReceiptInfo:
    """Write the receipt PDF and return where it was stored."""
    directory = Path(receipts_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_name = receipt_file_name(str(guest.get("nombre") or ""))
    destination = directory / file_name
    _draw_pdf(destination, build_receipt_lines(payment, guest, config, hotel))
    logger.info("Receipt written: %s", destination)
    return ReceiptInfo(
        fileName=file_name,
        filePath=str(destination),
        relativePath=f"{RECEIPTS_URL_PREFIX}/{file_name}",
    )


async def render_receipt_async(
    receipts_dir: str,
    payment: Mapping[str, Any],
    guest: Mapping[str, Any],
    config: Mapping[str, Any],
    hotel: Mapping[str, Any],
) -> ReceiptInfo:
    return await asyncio.to_thread(render_receipt, receipts_dir, payment, guest, config, hotel)


def resolve_receipt_path(receipts_dir: str, file_name: str) -> Optional[Path]:
    """Return the stored receipt path, or None for unknown or unsafe names."""
    if not file_name or Path(file_name).name != file_name or not file_name.endswith(".pdf"):
        return None
    candidate = Path(receipts_dir) / file_name
    return candidate if candidate.is_file() else None
