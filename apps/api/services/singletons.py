"""Single-row tables (wedding configuration, hotel).

Both tables keep exactly one row under a fixed primary key. Saving updates
that row in place, so there is never a moment with zero rows.
"""

from typing import Any, Dict, Optional, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession

from database import Base
from services.tracking import stamp_created, stamp_modified


SINGLETON_ID = 1


async def get_singleton(db: AsyncSession, model: Type[Base]) -> Optional[Base]:
    return await db.get(model, SINGLETON_ID)


async def upsert_singleton(
    db: AsyncSession,
    model: Type[Base],
    values: Dict[str, Any],
    user_id: Optional[int] = None,
    user_email: Optional[str] = None,
) -> Tuple[Base, bool]:
    """Create or replace the single row. Returns ``(row, created)``; caller commits."""
    row = await get_singleton(db, model)
    created = row is None
    if created:
        row = model(id=SINGLETON_ID, **values)
        stamp_created(row, user_id, user_email)
        db.add(row)
    else:
        for field, value in values.items():
            setattr(row, field, value)
        stamp_modified(row, user_id, user_email)
    await db.flush()
    return row, created
