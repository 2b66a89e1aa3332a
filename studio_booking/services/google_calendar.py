# studio_booking/services/google_calendar.py
"""
Google Calendar integration (CALENDAR_PROVIDER=google).
Creates an event on the consultant's calendar for each new booking using a
service account.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from studio_booking.core.config import Settings
from studio_booking.core.errors import ProviderError
from studio_booking.core.logging import get_logger
from studio_booking.services.email_templates import AppointmentNotice, NO_MESSAGE, NOT_PROVIDED

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


class CalendarProviderError(ProviderError):
    pass


class GoogleCalendarProvider:
    name = "google"

    def __init__(
        self,
        *,
        service_account_json: Optional[str],
        calendar_id: str = "primary",
        organizer_email: Optional[str] = None,
        organizer_name: str = "",
    ):
        self.service_account_json = service_account_json
        self.calendar_id = calendar_id
        self.organizer_email = organizer_email
        self.organizer_name = organizer_name
        self._service = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleCalendarProvider":
        return cls(
            service_account_json=settings.GOOGLE_SERVICE_ACCOUNT_JSON,
            calendar_id=settings.GOOGLE_CALENDAR_ID,
            organizer_email=settings.BUSINESS_EMAIL,
            organizer_name=settings.BUSINESS_NAME,
        )

    def get_service(self):
        """Build the Calendar v3 client once from the service account credentials."""
        if self._service is not None:
            return self._service

        if not self.service_account_json:
            raise CalendarProviderError("GOOGLE_SERVICE_ACCOUNT_JSON non défini", code="config")
        try:
            credentials_info = json.loads(self.service_account_json)
        except json.JSONDecodeError as e:
            raise CalendarProviderError(f"GOOGLE_SERVICE_ACCOUNT_JSON invalide: {e}", code="config") from e

        credentials = service_account.Credentials.from_service_account_info(credentials_info, scopes=SCOPES)
        self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        logger.info("google_calendar_ready", calendar_id=self.calendar_id)
        return self._service

    def event_body(self, notice: AppointmentNotice) -> Dict[str, Any]:
        description = "\n".join(
            [
                "Détails du rendez-vous :",
                f"• Client : {notice.name}",
                f"• Email : {notice.email}",
                f"• Téléphone : {notice.phone or NOT_PROVIDED}",
                f"• Durée : {notice.duration_min} minutes",
                "",
                f"Message : {notice.message or NO_MESSAGE}",
            ]
        )
        body: Dict[str, Any] = {
            "summary": f"Consultation - {notice.service} ({notice.name})",
            "description": description,
            "start": {"dateTime": notice.start_utc, "timeZone": "UTC"},
            "end": {"dateTime": notice.end_utc, "timeZone": "UTC"},
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "popup", "minutes": 15},
                ],
            },
        }
        if notice.meeting_link:
            body["location"] = notice.meeting_link
        elif notice.address:
            body["location"] = notice.address
        if self.organizer_email:
            body["attendees"] = [
                {
                    "email": self.organizer_email,
                    "displayName": self.organizer_name,
                    "responseStatus": "accepted",
                }
            ]
        return body

    def _insert(self, body: Dict[str, Any]) -> Dict[str, Any]:
        service = self.get_service()
        return service.events().insert(calendarId=self.calendar_id, body=body).execute()

    async def create_event(self, notice: AppointmentNotice) -> Dict[str, Any]:
        # googleapiclient is blocking; keep it off the event loop
        try:
            event = await asyncio.to_thread(self._insert, self.event_body(notice))
        except HttpError as e:
            raise CalendarProviderError(
                f"Google Calendar API error: {e}",
                status_code=getattr(e.resp, "status", None),
            ) from e

        logger.info("calendar_event_created", provider=self.name, event_id=event.get("id"))
        return {"eventId": event.get("id"), "webLink": event.get("htmlLink", "")}
