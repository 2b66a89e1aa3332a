# studio_booking/services/slot_suggestions.py
"""
Candidate consultation slots for a service, by time-of-day preference.

Without a date every period slot is offered. With a date, slots whose window
on that day (business timezone) overlaps a blocking appointment are dropped.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.business import (
    PERIOD_SLOTS,
    SUGGESTED_SLOT_MINUTES,
    day_bounds_utc,
    local_to_utc,
    period_of,
    slot_label,
)
from studio_booking.crud.appointment import list_blocking_between
from studio_booking.db.models.service import Service
from studio_booking.services.availability import overlaps

PERIOD_ORDER = ("morning", "afternoon", "evening")


@dataclass(frozen=True)
class SuggestedSlot:
    id: str
    start: time
    end: time
    duration: int
    period: str
    price: Optional[float]
    available: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startTime": self.start.strftime("%H:%M"),
            "endTime": self.end.strftime("%H:%M"),
            "duration": self.duration,
            "label": slot_label(self.start, self.end),
            "available": self.available,
            "period": self.period,
            "price": self.price,
        }


def candidate_times(preference: Optional[str]) -> list[time]:
    """Starts for one period; unknown or missing preference means every period."""
    if preference in PERIOD_SLOTS:
        return list(PERIOD_SLOTS[preference])
    return [t for period in PERIOD_ORDER for t in PERIOD_SLOTS[period]]


def build_slots(
    service_id: str,
    *,
    preference: Optional[str] = None,
    day: Optional[date] = None,
    price: Optional[float] = None,
    busy: Iterable[tuple[datetime, datetime]] = (),
    tz: Optional[ZoneInfo] = None,
) -> list[SuggestedSlot]:
    busy = list(busy)
    day_key = day.isoformat() if day else "any"
    slots = []
    for start in candidate_times(preference):
        end_dt = datetime.combine(date.min, start) + timedelta(minutes=SUGGESTED_SLOT_MINUTES)
        if day is not None and busy and tz is not None:
            start_utc = local_to_utc(day, start, tz)
            end_utc = start_utc + timedelta(minutes=SUGGESTED_SLOT_MINUTES)
            if any(overlaps(start_utc, end_utc, b_start, b_end) for b_start, b_end in busy):
                continue
        slots.append(
            SuggestedSlot(
                id=f"{service_id}-{day_key}-{start.strftime('%H:%M')}",
                start=start,
                end=end_dt.time(),
                duration=SUGGESTED_SLOT_MINUTES,
                period=period_of(start),
                price=price,
            )
        )
    return slots


async def suggest_slots(
    db: AsyncSession,
    service_id: str,
    *,
    service: Optional[Service],
    resource: str,
    tz: ZoneInfo,
    preference: Optional[str] = None,
    day: Optional[date] = None,
) -> Sequence[SuggestedSlot]:
    busy: list[tuple[datetime, datetime]] = []
    if day is not None:
        day_start, day_end = day_bounds_utc(day, tz)
        booked = await list_blocking_between(db, resource=resource, start_utc=day_start, end_utc=day_end)
        busy = [(a.start_time, a.end_time) for a in booked]
    return build_slots(
        service_id,
        preference=preference,
        day=day,
        price=service.base_price if service is not None else None,
        busy=busy,
        tz=tz,
    )
