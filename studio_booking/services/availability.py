# studio_booking/services/availability.py
"""
Slot availability: a window [start, end) is free when no appointment on the
same resource with a blocking status intersects it. Windows that only touch
(one ends exactly when the other starts) do not intersect.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.business import ensure_utc
from studio_booking.crud.appointment import find_overlapping


def window(start_utc: datetime, duration_min: int) -> tuple[datetime, datetime]:
    start_utc = ensure_utc(start_utc)
    return start_utc, start_utc + timedelta(minutes=duration_min)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


async def is_slot_available(
    db: AsyncSession,
    start_utc: datetime,
    end_utc: datetime,
    *,
    resource: str,
    exclude_id: Optional[str] = None,
) -> bool:
    if end_utc <= start_utc:
        raise ValueError("endTime must be after startTime")
    clash = await find_overlapping(
        db,
        resource=resource,
        start_utc=ensure_utc(start_utc),
        end_utc=ensure_utc(end_utc),
        exclude_id=exclude_id,
    )
    return clash is None
