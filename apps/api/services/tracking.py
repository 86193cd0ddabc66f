"""Stamping of the creator/modifier columns."""

from datetime import datetime, timezone
from typing import Optional

from models.tracking import TrackedMixin


def stamp_modified(
    row: TrackedMixin,
    user_id: Optional[int],
    user_email: Optional[str],
    when: Optional[datetime] = None,
) -> None:
    row.modificado_por = user_id
    row.modificado_por_email = user_email
    row.fecha_modificacion = when or datetime.now(timezone.utc)


def stamp_created(row: TrackedMixin, user_id: Optional[int], user_email: Optional[str]) -> None:
    """Record the creator; a new row also counts as modified by them."""
    now = datetime.now(timezone.utc)
    row.creado_por = user_id
    row.creado_por_email = user_email
    row.fecha_creacion = now
    stamp_modified(row, user_id, user_email, now)
