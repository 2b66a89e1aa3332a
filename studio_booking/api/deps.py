# studio_booking/api/deps.py
from __future__ import annotations

from zoneinfo import ZoneInfo

from fastapi import Request

from studio_booking.core.config import Settings
from studio_booking.services.appointment_builder import RequestMeta
from studio_booking.services.notifications import NotificationDispatcher


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_business_tz(request: Request) -> ZoneInfo:
    return ZoneInfo(request.app.state.settings.BUSINESS_TIMEZONE)


def get_request_meta(request: Request) -> RequestMeta:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return RequestMeta(
        ip_address=ip,
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )
