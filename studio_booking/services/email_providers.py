# studio_booking/services/email_providers.py
"""
Transactional email strategies selected by EMAIL_PROVIDER:
- brevo: Brevo SMTP API (POST /v3/smtp/email)
- graph: Microsoft Graph sendMail
- log:   writes the message to the application log only
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from studio_booking.core.errors import ProviderError
from studio_booking.core.logging import get_logger
from studio_booking.services.email_templates import EmailContent
from studio_booking.services.graph_client import GraphClient

logger = get_logger(__name__)


class BrevoError(ProviderError):
    pass


class EmailProvider(Protocol):
    name: str

    async def send(self, to: Sequence[str], content: EmailContent) -> Dict[str, Any]:
        ...


def strip_html(html: str) -> str:
    text = re.sub(r"<(style|script)[^>]*>.*?</\1>", "", html, flags=re.S | re.I)
    text = re.sub(r"<[^>]*>", " ", text)
    return re.sub(r"\s+", " ", text).strip()


class BrevoEmailProvider:
    name = "brevo"

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: Optional[str],
        sender_email: Optional[str],
        sender_name: str,
        api_url: str = "https://api.brevo.com/v3/smtp/email",
        timeout: float = 10.0,
    ):
        self._http = http
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.api_url = api_url
        self.timeout = timeout

    def payload(self, to: Sequence[str], content: EmailContent) -> Dict[str, Any]:
        return {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": addr} for addr in to],
            "subject": content.subject,
            "htmlContent": content.html,
            "textContent": content.text or strip_html(content.html),
        }

    async def send(self, to: Sequence[str], content: EmailContent) -> Dict[str, Any]:
        if not self.api_key:
            raise BrevoError("BREVO_API_KEY manquant dans les variables d'environnement", code="config")

        try:
            resp = await self._http.post(
                self.api_url,
                json=self.payload(to, content),
                headers={"api-key": self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise BrevoError(f"Brevo API injoignable: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}

        if resp.status_code >= 400:
            raise BrevoError(
                f"Brevo API Error: HTTP {resp.status_code} {data}",
                status_code=resp.status_code,
                code=data.get("code") if isinstance(data, dict) else None,
                payload=data,
            )

        logger.info("email_sent", provider=self.name, message_id=data.get("messageId"), recipients=len(to))
        return {"provider": self.name, "messageId": data.get("messageId")}


class GraphMailProvider:
    name = "graph"

    def __init__(self, client: GraphClient):
        self.client = client

    def message(self, to: Sequence[str], content: EmailContent) -> Dict[str, Any]:
        return {
            "subject": content.subject,
            "body": {"contentType": "HTML", "content": content.html},
            "toRecipients": [{"emailAddress": {"address": addr}} for addr in to],
        }

    async def send(self, to: Sequence[str], content: EmailContent) -> Dict[str, Any]:
        await self.client.send_mail(self.message(to, content))
        logger.info("email_sent", provider=self.name, recipients=len(to))
        return {"provider": self.name}


class LogEmailProvider:
    """Development fallback: keeps the last messages in memory and logs them."""

    name = "log"

    def __init__(self, max_kept: int = 50):
        self.max_kept = max_kept
        self.sent: List[Dict[str, Any]] = []

    async def send(self, to: Sequence[str], content: EmailContent) -> Dict[str, Any]:
        record = {"to": list(to), "subject": content.subject, "text": content.text}
        self.sent.append(record)
        del self.sent[:-self.max_kept]
        logger.info("email_logged", to=list(to), subject=content.subject)
        return {"provider": self.name}
