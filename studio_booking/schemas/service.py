# studio_booking/schemas/service.py

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studio_booking.schemas.common import CamelModel


class Pricing(CamelModel):
    base_price: float = Field(0, ge=0)
    currency: str = Field("EUR", min_length=3, max_length=3)
    price_type: Literal["project", "hourly"] = "project"
    custom_pricing: bool = False


class Duration(CamelModel):
    estimated_hours: Optional[float] = Field(None, ge=0)
    consultation_duration: int = Field(60, gt=0, description="Minutes")
    flexible_duration: bool = False


class AdvanceBooking(CamelModel):
    min: int = Field(24, ge=0, description="Hours")
    max: int = Field(2160, ge=0, description="Hours")


class BufferTime(CamelModel):
    before: int = Field(0, ge=0, description="Minutes")
    after: int = Field(0, ge=0, description="Minutes")


class Availability(CamelModel):
    requires_consultation: bool = True
    advance_booking: AdvanceBooking = Field(default_factory=AdvanceBooking)
    buffer_time: BufferTime = Field(default_factory=BufferTime)


class ClientInfoField(CamelModel):
    field: str
    required: bool = False
    label: str
    placeholder: Optional[str] = None
    help_text: Optional[str] = None


class Requirements(CamelModel):
    client_info: list[ClientInfoField] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    preparation_steps: list[str] = Field(default_factory=list)


class Color(CamelModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None


class ServiceCreate(CamelModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    category: str = Field(..., min_length=1)
    description: Optional[str] = None
    short_description: Optional[str] = None
    features: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)
    pricing: Pricing = Field(default_factory=Pricing)
    duration: Duration = Field(default_factory=Duration)
    availability: Availability = Field(default_factory=Availability)
    requirements: Requirements = Field(default_factory=Requirements)
    display_order: int = 0
    icon: Optional[str] = None
    color: Color = Field(default_factory=Color)
    is_active: bool = True


class ServiceUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    short_description: Optional[str] = None
    features: Optional[list[str]] = None
    technologies: Optional[list[str]] = None
    deliverables: Optional[list[str]] = None
    pricing: Optional[Pricing] = None
    duration: Optional[Duration] = None
    availability: Optional[Availability] = None
    requirements: Optional[Requirements] = None
    display_order: Optional[int] = None
    icon: Optional[str] = None
    color: Optional[Color] = None
    is_active: Optional[bool] = None


def json_fields(model: BaseModel, *, exclude_unset: bool = False) -> dict:
    """Dump a request model to the camelCase JSON shape stored on the row."""
    if exclude_unset:
        # Nested blocks that were sent are stored whole, defaults included
        return model.model_dump(mode="json", by_alias=True, include=set(model.model_fields_set))
    return model.model_dump(mode="json", by_alias=True)
