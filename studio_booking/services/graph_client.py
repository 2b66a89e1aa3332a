# studio_booking/services/graph_client.py
"""
Microsoft Graph integration: OAuth2 token handling plus the calendar, contacts
and mail calls used after a booking.

Two grants are supported:
- refresh_token (delegated, acts on /me), when GRAPH_REFRESH_TOKEN is set
- client_credentials (application, acts on /users/{GRAPH_MAILBOX}) otherwise
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from zoneinfo import ZoneInfo

from studio_booking.core.config import Settings
from studio_booking.core.errors import ProviderError
from studio_booking.core.logging import get_logger
from studio_booking.services.email_templates import AppointmentNotice, calendar_event_html

logger = get_logger(__name__)

TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
APP_SCOPE = "https://graph.microsoft.com/.default"

# Refresh a little before the advertised expiry
TOKEN_EXPIRY_MARGIN = 60


class GraphAPIError(ProviderError):
    pass


class GraphClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        tenant_id: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str] = None,
        mailbox: Optional[str] = None,
        scopes: str = "",
        timeout: float = 15.0,
    ):
        self._http = http
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.mailbox = mailbox
        self.scopes = scopes
        self.timeout = timeout
        self._access_token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient) -> "GraphClient":
        return cls(
            http,
            tenant_id=settings.GRAPH_TENANT_ID,
            client_id=settings.GRAPH_CLIENT_ID,
            client_secret=settings.GRAPH_CLIENT_SECRET,
            refresh_token=settings.GRAPH_REFRESH_TOKEN,
            mailbox=settings.GRAPH_MAILBOX,
            scopes=settings.GRAPH_SCOPES,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    @property
    def delegated(self) -> bool:
        return bool(self.refresh_token)

    @property
    def user_path(self) -> str:
        if self.delegated:
            return "/me"
        if not self.mailbox:
            raise GraphAPIError("GRAPH_MAILBOX est requis sans refresh token", code="config")
        return f"/users/{self.mailbox}"

    def _token_form(self) -> Dict[str, str]:
        form = {"client_id": self.client_id or "", "client_secret": self.client_secret or ""}
        if self.delegated:
            form.update(grant_type="refresh_token", refresh_token=self.refresh_token or "", scope=self.scopes)
        else:
            form.update(grant_type="client_credentials", scope=APP_SCOPE)
        return form

    async def access_token(self) -> str:
        async with self._lock:
            if self._access_token and time.monotonic() < self._expires_at:
                return self._access_token

            if not (self.tenant_id and self.client_id and self.client_secret):
                raise GraphAPIError("Configuration Microsoft Graph incomplète", code="config")

            try:
                resp = await self._http.post(
                    TOKEN_URL.format(tenant=self.tenant_id),
                    data=self._token_form(),
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise GraphAPIError(f"Impossible d'obtenir l'access token Graph: {e}") from e

            data = _json_or_text(resp)
            if resp.status_code >= 400 or (isinstance(data, dict) and data.get("error")):
                detail = data.get("error_description") or data.get("error") if isinstance(data, dict) else data
                raise GraphAPIError(
                    f"Impossible d'obtenir l'access token Graph: HTTP {resp.status_code} {detail}",
                    status_code=resp.status_code,
                    payload=data,
                )

            self._access_token = data["access_token"]
            self._expires_at = time.monotonic() + int(data.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN
            # Delegated grants may rotate the refresh token
            if self.delegated and data.get("refresh_token"):
                self.refresh_token = data["refresh_token"]
            logger.debug("graph_token_acquired", grant="refresh_token" if self.delegated else "client_credentials")
            return self._access_token

    async def request(self, method: str, path: str, *, json: Any = None) -> Any:
        token = await self.access_token()
        try:
            resp = await self._http.request(
                method,
                f"{GRAPH_BASE_URL}{path}",
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise GraphAPIError(f"Graph {method} {path} a échoué: {e}") from e

        if resp.status_code >= 400:
            data = _json_or_text(resp)
            code = None
            if isinstance(data, dict):
                code = (data.get("error") or {}).get("code")
            raise GraphAPIError(
                f"Graph {method} {path}: HTTP {resp.status_code} {data}",
                status_code=resp.status_code,
                code=code,
                payload=data,
            )
        if resp.status_code == 202 or not resp.content:
            return None
        return resp.json()

    async def create_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", f"{self.user_path}/events", json=event)

    async def create_contact(self, contact: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Returns None when Graph reports the contact already exists."""
        try:
            return await self.request("POST", f"{self.user_path}/contacts", json=contact)
        except GraphAPIError as e:
            if e.code and "Duplicate" in e.code:
                logger.info("graph_contact_duplicate", code=e.code)
                return None
            raise

    async def send_mail(self, message: Dict[str, Any], *, save_to_sent_items: bool = True) -> None:
        await self.request(
            "POST",
            f"{self.user_path}/sendMail",
            json={"message": message, "saveToSentItems": save_to_sent_items},
        )


def _json_or_text(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class GraphCalendarProvider:
    name = "graph"

    def __init__(self, client: GraphClient, *, event_timezone: str):
        self.client = client
        self.event_timezone = event_timezone

    def _graph_time(self, iso_utc: str) -> Dict[str, str]:
        # Graph wants a naive dateTime paired with its timeZone
        local = datetime.fromisoformat(iso_utc).astimezone(ZoneInfo(self.event_timezone))
        return {"dateTime": local.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": self.event_timezone}

    def event_body(self, notice: AppointmentNotice) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "subject": f"Consultation - {notice.service}",
            "body": {"contentType": "HTML", "content": calendar_event_html(notice)},
            "start": self._graph_time(notice.start_utc),
            "end": self._graph_time(notice.end_utc),
            "attendees": [
                {
                    "emailAddress": {"address": notice.email, "name": notice.name},
                    "type": "required",
                }
            ],
        }
        if notice.location_type == "online":
            body["isOnlineMeeting"] = True
            body["onlineMeetingProvider"] = "teamsForBusiness"
        elif notice.address:
            body["location"] = {"displayName": notice.address}
        return body

    async def create_event(self, notice: AppointmentNotice) -> Dict[str, Any]:
        event = await self.client.create_event(self.event_body(notice))
        return {"eventId": event.get("id"), "webLink": event.get("webLink")}


class GraphContactsProvider:
    name = "graph"

    def __init__(self, client: GraphClient, *, company_name: str):
        self.client = client
        self.company_name = company_name

    def contact_body(self, notice: AppointmentNotice) -> Dict[str, Any]:
        parts = notice.name.split()
        return {
            "givenName": parts[0] if parts else notice.name,
            "surname": " ".join(parts[1:]),
            "emailAddresses": [{"address": notice.email, "name": notice.email}],
            "businessPhones": [notice.phone] if notice.phone else [],
            "jobTitle": f"Client {notice.service}",
            "companyName": f"Clients {self.company_name}",
        }

    async def add_contact(self, notice: AppointmentNotice) -> Dict[str, Any]:
        contact = await self.client.create_contact(self.contact_body(notice))
        if contact is None:
            return {"duplicate": True}
        return {"contactId": contact.get("id"), "duplicate": False}
