# studio_booking/services/booking.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.business import local_to_utc, parse_local_date, parse_local_time
from studio_booking.core.config import Settings
from studio_booking.core.errors import (
    BookingValidationError,
    ConflictError,
    NotFoundError,
    NotificationDeliveryError,
)
from studio_booking.core.logging import get_logger
from studio_booking.crud.appointment import (
    create_appointment_atomic,
    delete_appointment,
    get_appointment,
    get_by_cancellation_token,
    get_by_confirmation_token,
    has_previous_booking,
    list_appointments,
    mark_notification_sent,
    update_appointment_atomic,
)
from studio_booking.crud.service import get_service_by_ref
from studio_booking.db.models.appointment import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    Appointment,
)
from studio_booking.schemas.appointment import AppointmentUpdate, BookingInput, parse_start_time
from studio_booking.services.appointment_builder import (
    RequestMeta,
    build_appointment,
    build_location,
    validate_booking,
)
from studio_booking.services.email_templates import AppointmentNotice
from studio_booking.services.notifications import (
    DispatchResult,
    MandatoryNotificationError,
    NotificationDispatcher,
)
from studio_booking.services.tokens import assign_tokens

logger = get_logger(__name__)

SERVICE_NOT_FOUND_MESSAGE = "Service non trouvé ou indisponible"
APPOINTMENT_NOT_FOUND_MESSAGE = "Rendez-vous non trouvé"


# ---------- Public contract returned to the route ----------

@dataclass
class BookResult:
    appointment: Appointment
    notifications: DispatchResult


# ---------- Core orchestration ----------

async def book_appointment(
    db: AsyncSession,
    booking: BookingInput,
    meta: RequestMeta,
    *,
    settings: Settings,
    dispatcher: NotificationDispatcher,
) -> BookResult:
    """
    1) Validate required fields (no side effects on failure)
    2) Resolve the service and the returning-client flag
    3) Build and atomically insert the appointment
    4) Dispatch notifications; only the client email may fail the request
    """
    validate_booking(booking, settings)

    service = await get_service_by_ref(db, booking.service_ref, active_only=True)
    if service is None and booking.detailed:
        raise NotFoundError(SERVICE_NOT_FOUND_MESSAGE, details={"serviceId": booking.service_ref})

    returning = await has_previous_booking(db, booking.client.email)
    appt = build_appointment(booking, service, meta, settings=settings, is_returning_client=returning)

    appt = await create_appointment_atomic(
        db,
        appt,
        max_attempts=settings.BOOKING_MAX_ATTEMPTS,
        regenerate_tokens=assign_tokens,
    )
    logger.info(
        "appointment_created",
        appointment_id=appt.id,
        service=appt.service_snapshot.get("slug"),
        start_time=appt.start_time.isoformat(),
        returning_client=returning,
    )

    notice = AppointmentNotice.from_appointment(appt, settings)
    try:
        result = await dispatcher.dispatch(notice)
    except MandatoryNotificationError as e:
        # The row stays; the caller should retry the notification, not the booking
        raise NotificationDeliveryError(
            f"Échec de l'envoi de l'email de confirmation: {e.outcome.error}",
            appointment_id=appt.id,
            details={"appointmentId": appt.id, "notifications": e.result.to_dict()},
        ) from e

    await mark_notification_sent(db, appt.id, "confirmation")
    return BookResult(appointment=appt, notifications=result)


async def list_all(
    db: AsyncSession,
    *,
    status: Optional[str] = None,
    email: Optional[str] = None,
    limit: Optional[int] = None,
) -> Sequence[Appointment]:
    return await list_appointments(db, status=status, email=email, limit=limit)


def _new_window(appt: Appointment, update: AppointmentUpdate, tz: ZoneInfo) -> Optional[datetime]:
    if update.start_time:
        return parse_start_time(update.start_time, tz)
    if update.date is None and update.time is None:
        return None
    local = appt.local_start(tz)
    day = parse_local_date(update.date) if update.date else local.date()
    at = parse_local_time(update.time) if update.time else local.time().replace(tzinfo=None)
    return local_to_utc(day, at, tz)


def _status_changes(appt: Appointment, status: str) -> dict[str, Any]:
    if status == appt.status:
        return {}
    if not appt.can_transition_to(status):
        raise ConflictError(
            f"Transition de statut invalide: {appt.status} → {status}",
            details={"from": appt.status, "to": status},
        )
    changes: dict[str, Any] = {"status": status}
    if status == STATUS_CANCELLED:
        changes["cancelled_at"] = datetime.now(timezone.utc)
    elif status == STATUS_CONFIRMED and appt.confirmed_at is None:
        changes["confirmed_at"] = datetime.now(timezone.utc)
    return changes


async def update_appointment(
    db: AsyncSession, update: AppointmentUpdate, *, settings: Settings
) -> Appointment:
    appt = await get_appointment(db, update.id)
    if appt is None:
        raise NotFoundError(APPOINTMENT_NOT_FOUND_MESSAGE)

    tz = ZoneInfo(settings.BUSINESS_TIMEZONE)
    changes: dict[str, Any] = {}

    if update.status is not None:
        changes.update(_status_changes(appt, update.status))

    try:
        new_start = _new_window(appt, update, tz)
    except ValueError as e:
        raise BookingValidationError(str(e))
    if new_start is not None and new_start != appt.start_time:
        changes["start_time"] = new_start
        changes["end_time"] = new_start + timedelta(minutes=appt.duration_min)

    for attr in ("title", "description", "message"):
        value = getattr(update, attr)
        if value is not None:
            changes[attr] = value
    if update.project is not None:
        changes["project"] = dict(update.project)
    if update.location is not None:
        location = build_location(update.location, settings)
        existing_link = (appt.location or {}).get("meetingLink")
        if location["type"] == "online" and existing_link:
            location["meetingLink"] = existing_link
        changes["location"] = location
    if update.phone is not None:
        changes["client"] = {**(appt.client or {}), "phone": update.phone}

    if not changes:
        return appt

    appt = await update_appointment_atomic(
        db, appt.id, changes, max_attempts=settings.BOOKING_MAX_ATTEMPTS
    )
    logger.info("appointment_updated", appointment_id=appt.id, fields=sorted(changes))
    return appt


async def remove_appointment(db: AsyncSession, appointment_id: str) -> None:
    if not await delete_appointment(db, appointment_id):
        raise NotFoundError(APPOINTMENT_NOT_FOUND_MESSAGE)
    logger.info("appointment_deleted", appointment_id=appointment_id)


# ---------- Token self-service ----------

async def get_by_manage_token(db: AsyncSession, token: str) -> Appointment:
    appt = await get_by_cancellation_token(db, token)
    if appt is None:
        raise NotFoundError(APPOINTMENT_NOT_FOUND_MESSAGE)
    return appt


async def cancel_by_token(db: AsyncSession, token: str, *, settings: Settings) -> Appointment:
    appt = await get_by_manage_token(db, token)
    if appt.status == STATUS_CANCELLED:
        raise ConflictError("Ce rendez-vous est déjà annulé")
    appt = await update_appointment_atomic(
        db,
        appt.id,
        _status_changes(appt, STATUS_CANCELLED),
        max_attempts=settings.BOOKING_MAX_ATTEMPTS,
    )
    logger.info("appointment_cancelled", appointment_id=appt.id, via="token")
    return appt


async def confirm_by_token(db: AsyncSession, token: str, *, settings: Settings) -> Appointment:
    appt = await get_by_confirmation_token(db, token)
    if appt is None:
        raise NotFoundError(APPOINTMENT_NOT_FOUND_MESSAGE)
    if appt.status == STATUS_CONFIRMED or appt.confirmed_at is not None:
        raise ConflictError("Ce rendez-vous est déjà confirmé")
    if appt.status == STATUS_CANCELLED:
        raise ConflictError("Ce rendez-vous a été annulé")
    appt = await update_appointment_atomic(
        db,
        appt.id,
        _status_changes(appt, STATUS_CONFIRMED),
        max_attempts=settings.BOOKING_MAX_ATTEMPTS,
    )
    logger.info("appointment_confirmed", appointment_id=appt.id, via="token")
    return appt
