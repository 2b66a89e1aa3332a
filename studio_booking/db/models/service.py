# studio_booking/db/models/service.py

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from studio_booking.db.session import Base, UTCDateTime, utcnow


def _new_id() -> str:
    return uuid.uuid4().hex


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        sa.Index("ix_services_category", "category"),
        sa.Index("ix_services_display_order", "display_order"),
    )

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True, default=_new_id)
    slug: Mapped[str] = mapped_column(sa.String(120), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    category: Mapped[str] = mapped_column(sa.String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text)
    short_description: Mapped[str | None] = mapped_column(sa.String(300))

    features: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    technologies: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    deliverables: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)

    # {basePrice, currency, priceType, customPricing}
    pricing: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    # {estimatedHours, consultationDuration, flexibleDuration}
    duration: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    # {requiresConsultation, advanceBooking{min,max}, bufferTime{before,after}}
    availability: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    # {clientInfo[], documents[], preparationSteps[]}
    requirements: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)

    display_order: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    icon: Mapped[str | None] = mapped_column(sa.String(60))
    color: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    total_bookings: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    @property
    def consultation_minutes(self) -> int | None:
        value = (self.duration or {}).get("consultationDuration")
        return int(value) if value else None

    @property
    def base_price(self) -> float:
        return (self.pricing or {}).get("basePrice") or 0

    @property
    def currency(self) -> str:
        return (self.pricing or {}).get("currency") or "EUR"

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "slug": self.slug,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "shortDescription": self.short_description,
            "features": list(self.features or []),
            "technologies": list(self.technologies or []),
            "deliverables": list(self.deliverables or []),
            "pricing": dict(self.pricing or {}),
            "duration": dict(self.duration or {}),
            "availability": dict(self.availability or {}),
            "requirements": dict(self.requirements or {}),
            "displayOrder": self.display_order,
            "icon": self.icon,
            "color": dict(self.color or {}),
            "isActive": self.is_active,
            "stats": {"totalBookings": self.total_bookings},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
