# studio_booking/services/providers.py
# Wires the configured email / calendar / contacts strategies into a dispatcher

from __future__ import annotations

from typing import Optional

import httpx

from studio_booking.core.config import Settings
from studio_booking.core.logging import get_logger
from studio_booking.services.email_providers import (
    BrevoEmailProvider,
    EmailProvider,
    GraphMailProvider,
    LogEmailProvider,
)
from studio_booking.services.google_calendar import GoogleCalendarProvider
from studio_booking.services.graph_client import GraphCalendarProvider, GraphClient, GraphContactsProvider
from studio_booking.services.notifications import CalendarProvider, ContactsProvider, NotificationDispatcher

logger = get_logger(__name__)


def _email_provider(settings: Settings, http: httpx.AsyncClient, graph: GraphClient) -> EmailProvider:
    kind = settings.EMAIL_PROVIDER.lower()
    if kind == "brevo":
        return BrevoEmailProvider(
            http,
            api_key=settings.BREVO_API_KEY,
            sender_email=settings.BREVO_SENDER_EMAIL,
            sender_name=settings.BREVO_SENDER_NAME,
            api_url=settings.BREVO_API_URL,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    if kind == "graph":
        return GraphMailProvider(graph)
    if kind == "log":
        return LogEmailProvider()
    raise ValueError(f"Unknown EMAIL_PROVIDER '{settings.EMAIL_PROVIDER}' (brevo | graph | log)")


def _calendar_provider(settings: Settings, graph: GraphClient) -> Optional[CalendarProvider]:
    kind = settings.CALENDAR_PROVIDER.lower()
    if kind == "graph":
        return GraphCalendarProvider(graph, event_timezone=settings.GRAPH_EVENT_TIMEZONE)
    if kind == "google":
        return GoogleCalendarProvider.from_settings(settings)
    if kind == "none":
        return None
    raise ValueError(f"Unknown CALENDAR_PROVIDER '{settings.CALENDAR_PROVIDER}' (graph | google | none)")


def _contacts_provider(settings: Settings, graph: GraphClient) -> Optional[ContactsProvider]:
    kind = settings.CONTACTS_PROVIDER.lower()
    if kind == "graph":
        return GraphContactsProvider(graph, company_name=settings.BUSINESS_NAME)
    if kind == "none":
        return None
    raise ValueError(f"Unknown CONTACTS_PROVIDER '{settings.CONTACTS_PROVIDER}' (graph | none)")


def build_dispatcher(settings: Settings, http: httpx.AsyncClient) -> NotificationDispatcher:
    # One Graph client so the access token is shared between calendar, contacts and mail
    graph = GraphClient.from_settings(settings, http)
    dispatcher = NotificationDispatcher(
        email=_email_provider(settings, http, graph),
        calendar=_calendar_provider(settings, graph),
        contacts=_contacts_provider(settings, graph),
        settings=settings,
    )
    logger.info(
        "notification_providers",
        email=settings.EMAIL_PROVIDER,
        calendar=settings.CALENDAR_PROVIDER,
        contacts=settings.CONTACTS_PROVIDER,
    )
    return dispatcher
