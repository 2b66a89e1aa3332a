# studio_booking/services/appointment_builder.py
"""
Turns a validated booking request into an Appointment row ready for insertion.

Nothing here touches the database: the service record and the returning-client
flag are looked up by the caller, so the builder stays a pure function of its
inputs (plus the clock and the token generator).
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from studio_booking.core.config import Settings
from studio_booking.core.errors import BookingValidationError
from studio_booking.db.models.appointment import STATUS_PENDING, Appointment, empty_notifications
from studio_booking.db.models.service import Service
from studio_booking.schemas.appointment import (
    MISSING_FIELDS_MESSAGE,
    BookingInput,
    ConsentsIn,
    LocationIn,
)
from studio_booking.services.tokens import assign_tokens

DETAILED_MISSING_MESSAGE = "Données manquantes ou consentement RGPD requis"
GDPR_REQUIRED_MESSAGE = "Le consentement RGPD est requis"


@dataclass(frozen=True)
class RequestMeta:
    ip_address: str = "unknown"
    user_agent: Optional[str] = None
    referer: Optional[str] = None

    @property
    def device_type(self) -> str:
        return "mobile" if self.user_agent and "Mobile" in self.user_agent else "desktop"


def _gdpr_accepted(consents: Optional[ConsentsIn]) -> bool:
    return bool(consents and consents.gdpr and consents.gdpr.accepted)


def validate_booking(booking: BookingInput, settings: Settings) -> None:
    if booking.detailed:
        if not booking.service_ref or booking.client is None or booking.start_time is None:
            raise BookingValidationError(DETAILED_MISSING_MESSAGE)
        if not _gdpr_accepted(booking.consents):
            raise BookingValidationError(DETAILED_MISSING_MESSAGE)
        if not booking.client.full_name:
            raise BookingValidationError(MISSING_FIELDS_MESSAGE)
        return

    if not booking.service_ref or booking.client is None or booking.start_time is None:
        raise BookingValidationError(MISSING_FIELDS_MESSAGE)
    if settings.QUICK_BOOKING_REQUIRES_GDPR and not _gdpr_accepted(booking.consents):
        raise BookingValidationError(GDPR_REQUIRED_MESSAGE)


def meeting_link(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/{secrets.token_urlsafe(9)}"


def build_location(location: LocationIn, settings: Settings) -> dict[str, Any]:
    if location.type == "online":
        return {
            "type": "online",
            "meetingLink": meeting_link(settings.MEETING_BASE_URL),
            "address": None,
            "details": location.details,
        }
    return {
        "type": "in-person",
        "meetingLink": None,
        "address": location.address,
        "details": location.details,
    }


def build_consents(consents: Optional[ConsentsIn], meta: RequestMeta, now: datetime) -> dict[str, Any]:
    consents = consents or ConsentsIn()
    gdpr_ok = _gdpr_accepted(consents)
    return {
        "gdpr": {
            "accepted": gdpr_ok,
            "acceptedAt": now.isoformat() if gdpr_ok else None,
            "ipAddress": meta.ip_address if gdpr_ok else None,
            "userAgent": (meta.user_agent or "unknown") if gdpr_ok else None,
        },
        "marketing": {"accepted": bool(consents.marketing and consents.marketing.accepted)},
        "dataRetention": {"accepted": bool(consents.data_retention and consents.data_retention.accepted)},
    }


def build_analytics(extra: dict[str, Any], meta: RequestMeta) -> dict[str, Any]:
    analytics = {
        "bookingSource": meta.referer or "direct",
        "deviceType": meta.device_type,
        "browserInfo": meta.user_agent,
        "referrerUrl": meta.referer,
    }
    analytics.update(extra or {})
    return analytics


def build_snapshot(service: Optional[Service], service_ref: str) -> dict[str, Any]:
    if service is None:
        # Quick bookings may name a service outside the catalog
        return {"name": service_ref, "slug": service_ref, "price": 0, "currency": "EUR", "category": None}
    return {
        "name": service.name,
        "slug": service.slug,
        "price": service.base_price,
        "currency": service.currency,
        "category": service.category,
    }


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def build_appointment(
    booking: BookingInput,
    service: Optional[Service],
    meta: RequestMeta,
    *,
    settings: Settings,
    now: Optional[datetime] = None,
    is_returning_client: bool = False,
) -> Appointment:
    validate_booking(booking, settings)
    now = now or datetime.now(timezone.utc)

    duration = (service.consultation_minutes if service else None) or settings.DEFAULT_CONSULTATION_MINUTES
    start = booking.start_time
    end = start + timedelta(minutes=duration)

    client = booking.client
    full_name = client.full_name
    first, last = _split_name(full_name)
    client_doc = {
        "name": full_name,
        "firstName": client.first_name or first,
        "lastName": client.last_name or last,
        "email": client.email,
        "phone": client.phone,
        "company": client.company_name,
        "timezone": client.timezone or settings.BUSINESS_TIMEZONE,
        "isReturningClient": is_returning_client,
    }

    snapshot = build_snapshot(service, booking.service_ref)
    appt = Appointment(
        service_id=service.id if service else None,
        service_snapshot=snapshot,
        client=client_doc,
        client_email=client.email,
        resource=settings.BOOKING_RESOURCE,
        start_time=start,
        end_time=end,
        duration_min=duration,
        location=build_location(booking.location, settings),
        title=booking.title or f"Consultation - {snapshot['name']}",
        description=booking.description,
        message=booking.message,
        project=dict(booking.project or {}),
        consents=build_consents(booking.consents, meta, now),
        analytics=build_analytics(booking.analytics, meta),
        status=STATUS_PENDING,
        notifications=empty_notifications(),
        created_at=now,
        updated_at=now,
    )
    assign_tokens(appt)
    return appt
