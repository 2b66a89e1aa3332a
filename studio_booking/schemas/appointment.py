# studio_booking/schemas/appointment.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional
from zoneinfo import ZoneInfo

from pydantic import ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from studio_booking.core.business import ensure_utc, local_to_utc, parse_local_date, parse_local_time
from studio_booking.db.models.appointment import STATUSES
from studio_booking.schemas.common import CamelModel

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MISSING_FIELDS_MESSAGE = "Champs obligatoires manquants"
INVALID_EMAIL_MESSAGE = "Format d'email invalide"


def _check_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_RE.match(value):
        raise ValueError(INVALID_EMAIL_MESSAGE)
    return value


class ConsentIn(CamelModel):
    accepted: bool = False


class ConsentsIn(CamelModel):
    gdpr: Optional[ConsentIn] = None
    marketing: Optional[ConsentIn] = None
    data_retention: Optional[ConsentIn] = None


class LocationIn(CamelModel):
    type: Literal["online", "in-person"] = "online"
    details: Optional[str] = None
    address: Optional[str] = None


class ClientIn(CamelModel):
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    company: Optional[Any] = None
    timezone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)

    @property
    def full_name(self) -> str:
        if self.name and self.name.strip():
            return self.name.strip()
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()

    @property
    def company_name(self) -> Optional[str]:
        if isinstance(self.company, dict):
            return self.company.get("name")
        return self.company


class AppointmentWindowIn(CamelModel):
    start_time: str
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    location: LocationIn = Field(default_factory=LocationIn)


@dataclass
class BookingInput:
    """Normalised booking request, whichever payload shape it came from."""

    service_ref: Optional[str]
    client: Optional[ClientIn]
    start_time: Optional[datetime]
    location: LocationIn = field(default_factory=LocationIn)
    title: Optional[str] = None
    description: Optional[str] = None
    message: Optional[str] = None
    project: dict[str, Any] = field(default_factory=dict)
    consents: Optional[ConsentsIn] = None
    analytics: dict[str, Any] = field(default_factory=dict)
    detailed: bool = False


class QuickBookingRequest(CamelModel):
    """Contact-form booking: name, email, service, date and time."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    phone: Optional[str] = None
    message: Optional[str] = None
    company: Optional[str] = None
    timezone: Optional[str] = None
    location: LocationIn = Field(default_factory=LocationIn)
    consents: Optional[ConsentsIn] = None

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("name", "service", "date", "time")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError(MISSING_FIELDS_MESSAGE)
        return value.strip()

    def to_booking_input(self, tz: ZoneInfo) -> BookingInput:
        starts_at = local_to_utc(parse_local_date(self.date), parse_local_time(self.time), tz)
        return BookingInput(
            service_ref=self.service,
            client=ClientIn(
                name=self.name,
                email=self.email,
                phone=self.phone,
                company=self.company,
                timezone=self.timezone,
            ),
            start_time=starts_at,
            location=self.location,
            message=self.message,
            consents=self.consents,
        )


class DetailedBookingRequest(CamelModel):
    """Full booking form; required blocks are checked by the appointment builder."""

    service_id: Optional[str] = None
    client: Optional[ClientIn] = None
    appointment: Optional[AppointmentWindowIn] = None
    project: dict[str, Any] = Field(default_factory=dict)
    consents: Optional[ConsentsIn] = None
    analytics: dict[str, Any] = Field(default_factory=dict)

    def to_booking_input(self, tz: ZoneInfo) -> BookingInput:
        start_time = None
        location = LocationIn()
        title = description = None
        if self.appointment is not None:
            start_time = parse_start_time(self.appointment.start_time, tz)
            location = self.appointment.location
            title = self.appointment.title
            description = self.appointment.description
        return BookingInput(
            service_ref=self.service_id,
            client=self.client,
            start_time=start_time,
            location=location,
            title=title,
            description=description,
            project=self.project,
            consents=self.consents,
            analytics=self.analytics,
            detailed=True,
        )


class AppointmentUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    id: str = Field(..., alias="_id", min_length=1)
    status: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    start_time: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    message: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[LocationIn] = None
    project: Optional[dict[str, Any]] = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in STATUSES:
            raise ValueError(f"Statut inconnu: {value}")
        return value


def parse_start_time(value: str, tz: ZoneInfo) -> datetime:
    """ISO8601 with offset, or a naive datetime read in the business timezone."""
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid startTime '{value}', expected ISO8601")
    return ensure_utc(dt, tz)


def validation_message(exc: ValidationError) -> str:
    """Pick the client-facing message for a failed request model."""
    errors = exc.errors()
    if any(err["type"] in ("missing", "string_too_short") for err in errors):
        return MISSING_FIELDS_MESSAGE
    for err in errors:
        if err["type"] == "value_error":
            return str(err.get("ctx", {}).get("error") or err["msg"])
    return errors[0]["msg"] if errors else MISSING_FIELDS_MESSAGE
