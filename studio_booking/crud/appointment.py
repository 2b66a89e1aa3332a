# studio_booking/crud/appointment.py

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from studio_booking.core.errors import ConflictError, NotFoundError, SlotUnavailableError
from studio_booking.core.logging import get_logger
from studio_booking.crud.service import increment_bookings_stmt
from studio_booking.db.models.appointment import BLOCKING_STATUSES, Appointment
from studio_booking.db.models.slot_ledger import SlotLedger

logger = get_logger(__name__)

SLOT_TAKEN_MESSAGE = "Ce créneau n'est plus disponible"


async def get_appointment(db: AsyncSession, appointment_id: str) -> Optional[Appointment]:
    return await db.get(Appointment, appointment_id)


async def get_by_confirmation_token(db: AsyncSession, token: str) -> Optional[Appointment]:
    res = await db.execute(sa.select(Appointment).where(Appointment.confirmation_token == token))
    return res.scalar_one_or_none()


async def get_by_cancellation_token(db: AsyncSession, token: str) -> Optional[Appointment]:
    res = await db.execute(sa.select(Appointment).where(Appointment.cancellation_token == token))
    return res.scalar_one_or_none()


async def list_appointments(
    db: AsyncSession,
    *,
    status: Optional[str] = None,
    email: Optional[str] = None,
    start_utc: Optional[datetime] = None,
    end_utc: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Sequence[Appointment]:
    q = sa.select(Appointment)
    if status is not None:
        q = q.where(Appointment.status == status)
    if email is not None:
        q = q.where(sa.func.lower(Appointment.client_email) == email.strip().lower())
    if start_utc is not None:
        q = q.where(Appointment.start_time >= start_utc)
    if end_utc is not None:
        q = q.where(Appointment.start_time < end_utc)
    q = q.order_by(Appointment.start_time.asc())
    if limit is not None:
        q = q.limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


async def find_overlapping(
    db: AsyncSession,
    *,
    resource: str,
    start_utc: datetime,
    end_utc: datetime,
    exclude_id: Optional[str] = None,
) -> Optional[Appointment]:
    """First blocking appointment whose window intersects [start, end), if any."""
    q = sa.select(Appointment).where(
        Appointment.resource == resource,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.start_time < end_utc,
        Appointment.end_time > start_utc,
    )
    if exclude_id is not None:
        q = q.where(Appointment.id != exclude_id)
    res = await db.execute(q.limit(1))
    return res.scalar_one_or_none()


async def list_blocking_between(
    db: AsyncSession, *, resource: str, start_utc: datetime, end_utc: datetime
) -> Sequence[Appointment]:
    res = await db.execute(
        sa.select(Appointment)
        .where(
            Appointment.resource == resource,
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_time < end_utc,
            Appointment.end_time > start_utc,
        )
        .order_by(Appointment.start_time.asc())
    )
    return res.scalars().all()


async def has_previous_booking(db: AsyncSession, email: str) -> bool:
    found = await db.scalar(
        sa.select(Appointment.id)
        .where(sa.func.lower(Appointment.client_email) == email.strip().lower())
        .limit(1)
    )
    return found is not None


# ---------- Slot ledger compare-and-swap ----------

async def _ensure_ledger(db: AsyncSession, resource: str) -> None:
    exists = await db.scalar(sa.select(SlotLedger.resource).where(SlotLedger.resource == resource))
    if exists is not None:
        await db.rollback()
        return
    db.add(SlotLedger(resource=resource, version=0))
    try:
        await db.commit()
    except IntegrityError:
        # Created concurrently by another request
        await db.rollback()


async def _read_version(db: AsyncSession, resource: str) -> int:
    return int(await db.scalar(sa.select(SlotLedger.version).where(SlotLedger.resource == resource)))


async def _swap_version(db: AsyncSession, resource: str, expected: int) -> bool:
    res = await db.execute(
        sa.update(SlotLedger)
        .where(SlotLedger.resource == resource, SlotLedger.version == expected)
        .values(version=expected + 1, updated_at=datetime.now(timezone.utc))
    )
    return res.rowcount == 1


async def create_appointment_atomic(
    db: AsyncSession,
    appt: Appointment,
    *,
    max_attempts: int = 3,
    regenerate_tokens: Optional[Callable[[Appointment], None]] = None,
) -> Appointment:
    """Insert `appt` only if its window is still free.

    The overlap check, the insert, the service counter increment and the ledger
    version bump commit together. A lost compare-and-swap means another write
    landed on the same resource in between; the whole step is retried.
    """
    await _ensure_ledger(db, appt.resource)

    for attempt in range(1, max_attempts + 1):
        version = await _read_version(db, appt.resource)
        clash = await find_overlapping(
            db, resource=appt.resource, start_utc=appt.start_time, end_utc=appt.end_time
        )
        if clash is not None:
            taken = clash.start_time.isoformat()
            await db.rollback()
            raise SlotUnavailableError(SLOT_TAKEN_MESSAGE, details={"conflictWith": taken})

        db.add(appt)
        try:
            await db.flush()
        except IntegrityError:
            # Only the token columns can collide; draw new ones and go again
            await db.rollback()
            if regenerate_tokens is None:
                raise
            regenerate_tokens(appt)
            continue

        if appt.service_id:
            await db.execute(increment_bookings_stmt(appt.service_id))

        if not await _swap_version(db, appt.resource, version):
            await db.rollback()
            logger.info("slot_ledger_contention", resource=appt.resource, attempt=attempt)
            continue

        await db.commit()
        return appt

    raise ConflictError("Réservation concurrente, veuillez réessayer")


async def update_appointment_atomic(
    db: AsyncSession,
    appointment_id: str,
    changes: dict[str, Any],
    *,
    max_attempts: int = 3,
) -> Appointment:
    """Apply attribute changes; re-checks the window when it moves.

    Changes are re-applied on each attempt since a rollback expires them.
    """
    appt = await db.get(Appointment, appointment_id)
    if appt is None:
        raise NotFoundError("Rendez-vous non trouvé")

    if "start_time" not in changes and "end_time" not in changes:
        for attr, value in changes.items():
            setattr(appt, attr, value)
        appt.updated_at = datetime.now(timezone.utc)
        await db.commit()
        return appt

    resource = appt.resource
    await _ensure_ledger(db, resource)

    for attempt in range(1, max_attempts + 1):
        appt = await db.get(Appointment, appointment_id, populate_existing=True)
        if appt is None:
            raise NotFoundError("Rendez-vous non trouvé")
        version = await _read_version(db, resource)
        start = changes.get("start_time", appt.start_time)
        end = changes.get("end_time", appt.end_time)
        clash = await find_overlapping(
            db, resource=resource, start_utc=start, end_utc=end, exclude_id=appt.id
        )
        if clash is not None:
            taken = clash.start_time.isoformat()
            await db.rollback()
            raise SlotUnavailableError(SLOT_TAKEN_MESSAGE, details={"conflictWith": taken})

        for attr, value in changes.items():
            setattr(appt, attr, value)
        appt.updated_at = datetime.now(timezone.utc)

        if not await _swap_version(db, resource, version):
            await db.rollback()
            logger.info("slot_ledger_contention", resource=resource, attempt=attempt)
            continue
        await db.commit()
        return appt

    raise ConflictError("Réservation concurrente, veuillez réessayer")


async def delete_appointment(db: AsyncSession, appointment_id: str) -> bool:
    res = await db.execute(sa.delete(Appointment).where(Appointment.id == appointment_id))
    await db.commit()
    return res.rowcount > 0


async def mark_notification_sent(db: AsyncSession, appointment_id: str, channel: str) -> None:
    appt = await db.get(Appointment, appointment_id)
    if appt is None:
        return
    notifications = {k: dict(v) for k, v in (appt.notifications or {}).items()}
    notifications[channel] = {"sent": True, "sentAt": datetime.now(timezone.utc).isoformat()}
    # JSON columns are not mutation-tracked; assign a new dict
    appt.notifications = notifications
    await db.commit()
