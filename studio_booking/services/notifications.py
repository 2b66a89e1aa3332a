# studio_booking/services/notifications.py
"""
Post-booking side effects, run as an ordered list of named steps:

  client_email    "Email principal"     mandatory, bounded by EMAIL_TIMEOUT_SECONDS
  calendar_event  "Calendrier"          optional
  contact         "Contact"             optional, duplicates count as success
  admin_email     "Admin notification"  optional

Each step yields a StepOutcome tagged ok / failed / skipped. An optional step
failing is recorded in the result; the mandatory step failing raises
MandatoryNotificationError carrying the partial result. The appointment is
already committed when the dispatcher runs, so nothing here rolls it back.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from studio_booking.core.config import Settings
from studio_booking.core.logging import get_logger
from studio_booking.services.email_providers import EmailProvider
from studio_booking.services.email_templates import (
    AppointmentNotice,
    admin_notification,
    client_confirmation,
)

logger = get_logger(__name__)

STEP_CLIENT_EMAIL = "client_email"
STEP_CALENDAR = "calendar_event"
STEP_CONTACT = "contact"
STEP_ADMIN_EMAIL = "admin_email"


class CalendarProvider(Protocol):
    name: str

    async def create_event(self, notice: AppointmentNotice) -> Dict[str, Any]:
        ...


class ContactsProvider(Protocol):
    name: str

    async def add_contact(self, notice: AppointmentNotice) -> Dict[str, Any]:
        ...


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepOutcome:
    step: str
    label: str
    status: StepStatus
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.OK


@dataclass
class DispatchResult:
    outcomes: List[StepOutcome] = field(default_factory=list)

    def _ok(self, step: str) -> bool:
        return any(o.step == step and o.ok for o in self.outcomes)

    def outcome(self, step: str) -> Optional[StepOutcome]:
        return next((o for o in self.outcomes if o.step == step), None)

    @property
    def email_sent(self) -> bool:
        return self._ok(STEP_CLIENT_EMAIL)

    @property
    def calendar_created(self) -> bool:
        return self._ok(STEP_CALENDAR)

    @property
    def contact_added(self) -> bool:
        return self._ok(STEP_CONTACT)

    @property
    def admin_notified(self) -> bool:
        return self._ok(STEP_ADMIN_EMAIL)

    @property
    def errors(self) -> List[str]:
        return [f"{o.label}: {o.error}" for o in self.outcomes if o.status is StepStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emailSent": self.email_sent,
            "calendarCreated": self.calendar_created,
            "contactAdded": self.contact_added,
            "adminNotified": self.admin_notified,
            "errors": self.errors,
            "steps": {o.step: o.status.value for o in self.outcomes},
        }


class MandatoryNotificationError(Exception):
    def __init__(self, outcome: StepOutcome, result: DispatchResult):
        super().__init__(f"{outcome.label}: {outcome.error}")
        self.outcome = outcome
        self.result = result


@dataclass(frozen=True)
class NotificationStep:
    name: str
    label: str
    action: Optional[Callable[[AppointmentNotice], Awaitable[Dict[str, Any]]]]
    mandatory: bool = False
    timeout: Optional[float] = None


class NotificationDispatcher:
    def __init__(
        self,
        *,
        email: EmailProvider,
        settings: Settings,
        calendar: Optional[CalendarProvider] = None,
        contacts: Optional[ContactsProvider] = None,
    ):
        self.email = email
        self.calendar = calendar
        self.contacts = contacts
        self.settings = settings

    # ---------- step actions ----------

    async def _send_client_email(self, notice: AppointmentNotice) -> Dict[str, Any]:
        return await self.email.send([notice.email], client_confirmation(notice, self.settings))

    async def _send_admin_email(self, notice: AppointmentNotice) -> Dict[str, Any]:
        return await self.email.send([self.settings.admin_email], admin_notification(notice))

    def steps(self) -> List[NotificationStep]:
        return [
            NotificationStep(
                STEP_CLIENT_EMAIL,
                "Email principal",
                self._send_client_email,
                mandatory=True,
                timeout=self.settings.EMAIL_TIMEOUT_SECONDS,
            ),
            NotificationStep(
                STEP_CALENDAR,
                "Calendrier",
                self.calendar.create_event if self.calendar else None,
                timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            ),
            NotificationStep(
                STEP_CONTACT,
                "Contact",
                self.contacts.add_contact if self.contacts else None,
                timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            ),
            NotificationStep(
                STEP_ADMIN_EMAIL,
                "Admin notification",
                self._send_admin_email if self.settings.admin_email else None,
                timeout=self.settings.EMAIL_TIMEOUT_SECONDS,
            ),
        ]

    async def run_step(self, step: NotificationStep, notice: AppointmentNotice) -> StepOutcome:
        if step.action is None:
            return StepOutcome(step.name, step.label, StepStatus.SKIPPED)
        try:
            data = await asyncio.wait_for(step.action(notice), timeout=step.timeout)
        except asyncio.TimeoutError:
            message = f"délai dépassé ({step.timeout:g}s)"
        except Exception as e:
            message = str(e) or type(e).__name__
        else:
            return StepOutcome(step.name, step.label, StepStatus.OK, data=data or {})

        logger.warning(
            "notification_step_failed",
            step=step.name,
            mandatory=step.mandatory,
            appointment_id=notice.appointment_id,
            error=message,
        )
        return StepOutcome(step.name, step.label, StepStatus.FAILED, error=message)

    async def dispatch(self, notice: AppointmentNotice) -> DispatchResult:
        result = DispatchResult()
        for step in self.steps():
            outcome = await self.run_step(step, notice)
            result.outcomes.append(outcome)
            if step.mandatory and outcome.status is StepStatus.FAILED:
                raise MandatoryNotificationError(outcome, result)

        logger.info(
            "notifications_dispatched",
            appointment_id=notice.appointment_id,
            email_sent=result.email_sent,
            calendar_created=result.calendar_created,
            contact_added=result.contact_added,
            admin_notified=result.admin_notified,
            errors=len(result.errors),
        )
        return result
