"""Request field checks that produce the dashboard's validation messages."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from services.errors import ValidationError
from services.reconciliation import CENT


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(data: Mapping[str, Any], fields: Iterable[str], message: str) -> None:
    if any(_is_blank(data.get(field)) for field in fields):
        raise ValidationError(message)


def parse_iso_date(value: Any, field_label: str) -> str:
    text = str(value or "").strip()
    try:
        return datetime.strptime(text, "%Y-%m-%d").date().isoformat()
    except ValueError as exc:
        raise ValidationError(f"{field_label} debe tener el formato AAAA-MM-DD") from exc


def parse_time(value: Any, field_label: str) -> str:
    text = str(value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValidationError(f"{field_label} debe tener el formato HH:MM")


def parse_amount(value: Any, field_label: str, allow_zero: bool = False) -> Decimal:
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValueError(value)
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_label} debe ser un número") from exc
    # amounts are stored in cents; check the rounded value
    if amount < 0 or (amount == 0 and not allow_zero):
        comparison = "mayor o igual a 0" if allow_zero else "mayor a 0"
        raise ValidationError(f"{field_label} debe ser {comparison}")
    return amount


def parse_count(value: Any, field_label: str) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_label} debe ser un número entero") from exc
    if count < 0 or str(value).strip() not in (str(count), f"{count}.0"):
        raise ValidationError(f"{field_label} debe ser un número entero mayor o igual a 0")
    return count
