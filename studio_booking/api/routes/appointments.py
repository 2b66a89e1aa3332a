# studio_booking/api/routes/appointments.py

from __future__ import annotations
from typing import Any, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.api.auth import require_admin_key
from studio_booking.api.deps import get_business_tz, get_dispatcher, get_request_meta, get_settings
from studio_booking.core.business import parse_local_date
from studio_booking.core.config import Settings
from studio_booking.core.errors import BookingValidationError
from studio_booking.crud.service import get_service_by_ref
from studio_booking.db.models.appointment import STATUSES
from studio_booking.db.session import get_session
from studio_booking.schemas.appointment import (
    MISSING_FIELDS_MESSAGE,
    AppointmentUpdate,
    DetailedBookingRequest,
    QuickBookingRequest,
    validation_message,
)
from studio_booking.services import booking as booking_service
from studio_booking.services.appointment_builder import DETAILED_MISSING_MESSAGE, RequestMeta
from studio_booking.services.notifications import NotificationDispatcher
from studio_booking.services.slot_suggestions import suggest_slots

router = APIRouter(prefix="/api/v1/appointments", tags=["appointments"])


def _parse_booking(body: dict[str, Any], tz: ZoneInfo):
    # The detailed form always carries serviceId; the contact form never does
    detailed = "serviceId" in body
    model = DetailedBookingRequest if detailed else QuickBookingRequest
    try:
        return model.model_validate(body).to_booking_input(tz)
    except ValidationError as e:
        message = validation_message(e)
        if detailed and message == MISSING_FIELDS_MESSAGE:
            message = DETAILED_MISSING_MESSAGE
        raise BookingValidationError(message)
    except ValueError as e:
        raise BookingValidationError(str(e))


@router.get("", dependencies=[Depends(require_admin_key)])
async def list_appointments_ep(
    db: AsyncSession = Depends(get_session),
    tz: ZoneInfo = Depends(get_business_tz),
    status_: Optional[str] = Query(None, alias="status", description="Filter by status"),
    email: Optional[str] = Query(None, description="Filter by client email"),
    limit: Optional[int] = Query(None, ge=1, description="Max rows; all when omitted"),
):
    if status_ is not None and status_ not in STATUSES:
        raise BookingValidationError(f"Statut inconnu: {status_}")
    rows = await booking_service.list_all(db, status=status_, email=email, limit=limit)
    return {"success": True, "data": [r.to_dict(tz) for r in rows], "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment_ep(
    body: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    meta: RequestMeta = Depends(get_request_meta),
    tz: ZoneInfo = Depends(get_business_tz),
):
    booking = _parse_booking(body, tz)
    result = await booking_service.book_appointment(
        db, booking, meta, settings=settings, dispatcher=dispatcher
    )
    return {
        "success": True,
        "message": "Rendez-vous créé avec succès",
        "data": result.appointment.to_dict(tz),
        "emailSent": result.notifications.email_sent,
        "notifications": result.notifications.to_dict(),
    }


@router.put("", dependencies=[Depends(require_admin_key)])
async def update_appointment_ep(
    body: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tz: ZoneInfo = Depends(get_business_tz),
):
    if not body.get("_id"):
        raise BookingValidationError("ID du rendez-vous requis")
    try:
        update = AppointmentUpdate.model_validate(body)
    except ValidationError as e:
        raise BookingValidationError(validation_message(e))

    appt = await booking_service.update_appointment(db, update, settings=settings)
    return {"success": True, "message": "Rendez-vous mis à jour avec succès", "data": appt.to_dict(tz)}


@router.delete("", dependencies=[Depends(require_admin_key)])
async def delete_appointment_ep(
    id: Optional[str] = Query(None, description="Appointment id"),
    db: AsyncSession = Depends(get_session),
):
    if not id:
        raise BookingValidationError("ID du rendez-vous requis")
    await booking_service.remove_appointment(db, id)
    return {"success": True, "message": "Rendez-vous supprimé avec succès"}


@router.get("/suggested-slots/{service_id}")
async def suggested_slots_ep(
    service_id: str,
    preference: Optional[str] = Query(None, description="morning | afternoon | evening"),
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tz: ZoneInfo = Depends(get_business_tz),
):
    # Unknown services still get candidate slots, without a price
    service = await get_service_by_ref(db, service_id)

    day = None
    if date:
        try:
            day = parse_local_date(date)
        except ValueError as e:
            raise BookingValidationError(str(e))

    slots = await suggest_slots(
        db,
        service_id,
        service=service,
        resource=settings.BOOKING_RESOURCE,
        tz=tz,
        preference=preference,
        day=day,
    )
    return {
        "success": True,
        "data": {
            "serviceId": service_id,
            "preference": preference,
            "date": date,
            "suggestedSlots": [s.to_dict() for s in slots],
        },
    }


# ---------------------------
# Token self-service (no API key: the token is the credential)
# ---------------------------

@router.get("/manage/{token}")
async def view_by_token_ep(
    token: str,
    db: AsyncSession = Depends(get_session),
    tz: ZoneInfo = Depends(get_business_tz),
):
    appt = await booking_service.get_by_manage_token(db, token)
    return {"success": True, "data": appt.to_dict(tz)}


@router.post("/manage/{token}/cancel")
async def cancel_by_token_ep(
    token: str,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tz: ZoneInfo = Depends(get_business_tz),
):
    appt = await booking_service.cancel_by_token(db, token, settings=settings)
    return {"success": True, "message": "Rendez-vous annulé", "data": appt.to_dict(tz)}


@router.post("/manage/{token}/confirm")
async def confirm_by_token_ep(
    token: str,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tz: ZoneInfo = Depends(get_business_tz),
):
    appt = await booking_service.confirm_by_token(db, token, settings=settings)
    return {"success": True, "message": "Rendez-vous confirmé", "data": appt.to_dict(tz)}
