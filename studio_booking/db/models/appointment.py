# studio_booking/db/models/appointment.py

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from studio_booking.db.session import Base, UTCDateTime, utcnow

STATUS_PENDING = "pending"
STATUS_SCHEDULED = "scheduled"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"

STATUSES = (STATUS_PENDING, STATUS_SCHEDULED, STATUS_CONFIRMED, STATUS_CANCELLED)

# Every status except cancelled keeps its window occupied
BLOCKING_STATUSES = (STATUS_PENDING, STATUS_SCHEDULED, STATUS_CONFIRMED)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_PENDING: frozenset({STATUS_SCHEDULED, STATUS_CONFIRMED, STATUS_CANCELLED}),
    STATUS_SCHEDULED: frozenset({STATUS_CONFIRMED, STATUS_CANCELLED}),
    STATUS_CONFIRMED: frozenset({STATUS_SCHEDULED, STATUS_CANCELLED}),
    STATUS_CANCELLED: frozenset(),
}

NOTIFICATION_CHANNELS = ("confirmation", "reminder24h", "reminder2h")


def _new_id() -> str:
    return uuid.uuid4().hex


def empty_notifications() -> dict[str, dict[str, Any]]:
    return {channel: {"sent": False, "sentAt": None} for channel in NOTIFICATION_CHANNELS}


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.Index("ix_appointments_window", "resource", "start_time", "end_time"),
        sa.Index("ix_appointments_status", "status"),
        sa.Index("ix_appointments_client_email", "client_email"),
    )

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True, default=_new_id)
    service_id: Mapped[str | None] = mapped_column(
        sa.String(32), sa.ForeignKey("services.id", ondelete="SET NULL"), nullable=True
    )
    # {name, slug, price, currency, category}; frozen at booking time
    service_snapshot: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False)

    # {name, firstName, lastName, email, phone, company, timezone, isReturningClient}
    client: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False)
    client_email: Mapped[str] = mapped_column(sa.String(320), nullable=False)

    resource: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration_min: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    # {type, meetingLink, address, details}
    location: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    title: Mapped[str | None] = mapped_column(sa.String(300))
    description: Mapped[str | None] = mapped_column(sa.Text)
    message: Mapped[str | None] = mapped_column(sa.Text)

    project: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    consents: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False)
    analytics: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)

    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=STATUS_PENDING)
    confirmation_token: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    cancellation_token: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    notifications: Mapped[dict[str, Any]] = mapped_column(
        sa.JSON, nullable=False, default=empty_notifications
    )
    # first confirmation; the confirmation token is spent once set
    confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status != STATUS_CANCELLED

    def can_transition_to(self, status: str) -> bool:
        return status == self.status or status in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def local_start(self, tz: ZoneInfo) -> datetime:
        return self.start_time.astimezone(tz)

    def to_dict(self, tz: ZoneInfo, *, include_secrets: bool = False) -> dict[str, Any]:
        local = self.local_start(tz)
        data: dict[str, Any] = {
            "_id": self.id,
            "service": self.service_id,
            "serviceSnapshot": dict(self.service_snapshot or {}),
            "client": dict(self.client or {}),
            "name": (self.client or {}).get("name"),
            "email": self.client_email,
            "phone": (self.client or {}).get("phone"),
            "date": local.strftime("%Y-%m-%d"),
            "time": local.strftime("%H:%M"),
            "message": self.message,
            "appointment": {
                "startTime": self.start_time.isoformat(),
                "endTime": self.end_time.isoformat(),
                "duration": self.duration_min,
                "location": dict(self.location or {}),
                "title": self.title,
                "description": self.description,
            },
            "project": dict(self.project or {}),
            "consents": dict(self.consents or {}),
            "analytics": dict(self.analytics or {}),
            "status": self.status,
            "confirmedAt": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "confirmationToken": self.confirmation_token,
            "notifications": dict(self.notifications or {}),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_secrets:
            data["cancellationToken"] = self.cancellation_token
        return data
