#!/usr/bin/env python3
"""
Tests for the booking service: atomic insert, status transitions, updates
and token self-service, against an in-memory database.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
import sqlalchemy as sa

from mocks.external_services import FakeCalendarProvider, FakeEmailProvider

from studio_booking.core.errors import (
    BookingValidationError,
    ConflictError,
    NotFoundError,
    NotificationDeliveryError,
    SlotUnavailableError,
)
from studio_booking.crud import appointment as appointment_crud
from studio_booking.db.models.appointment import Appointment
from studio_booking.db.models.service import Service
from studio_booking.db.models.slot_ledger import SlotLedger
from studio_booking.schemas.appointment import AppointmentUpdate, ConsentIn, ConsentsIn, QuickBookingRequest
from studio_booking.services import booking as booking_service
from studio_booking.services.appointment_builder import RequestMeta, build_appointment
from studio_booking.services.notifications import NotificationDispatcher

ABIDJAN = ZoneInfo("Africa/Abidjan")
UTC = timezone.utc
META = RequestMeta(ip_address="127.0.0.1", user_agent="pytest")


def _booking(**overrides):
    body = {
        "name": "Alice",
        "email": "alice@example.com",
        "service": "developpement-web",
        "date": "2025-03-10",
        "time": "10:00",
    }
    body.update(overrides)
    return QuickBookingRequest.model_validate(body).to_booking_input(ABIDJAN)


async def _book(db, settings, dispatcher, **overrides):
    return await booking_service.book_appointment(
        db, _booking(**overrides), META, settings=settings, dispatcher=dispatcher
    )


async def _count(db, model=Appointment):
    return await db.scalar(sa.select(sa.func.count()).select_from(model))


class TestBookAppointment:
    async def test_successful_booking(self, db_session, settings, dispatcher, catalog, email_provider):
        result = await _book(db_session, settings, dispatcher)

        appt = result.appointment
        assert appt.status == "pending"
        assert appt.start_time == datetime(2025, 3, 10, 10, 0, tzinfo=UTC)
        assert appt.duration_min == 90
        assert result.notifications.email_sent is True
        assert email_provider.subjects_for("alice@example.com") == [
            "✅ Confirmation de votre rendez-vous - Développement Web"
        ]

        stored = await appointment_crud.get_appointment(db_session, appt.id)
        assert stored.notifications["confirmation"]["sent"] is True

        service = await db_session.get(Service, catalog["developpement-web"].id, populate_existing=True)
        assert service.total_bookings == 1

        ledger = await db_session.get(SlotLedger, settings.BOOKING_RESOURCE, populate_existing=True)
        assert ledger.version == 1

    async def test_overlapping_booking_rejected(self, db_session, settings, dispatcher, catalog):
        await _book(db_session, settings, dispatcher)

        # 90 minute service at 10:00 still occupies 11:00
        with pytest.raises(SlotUnavailableError):
            await _book(db_session, settings, dispatcher, email="bob@example.com", time="11:00")

        assert await _count(db_session) == 1

    async def test_touching_booking_accepted(self, db_session, settings, dispatcher, catalog):
        await _book(db_session, settings, dispatcher)
        await _book(db_session, settings, dispatcher, email="bob@example.com", time="11:30")

        assert await _count(db_session) == 2

    async def test_returning_client_detected(self, db_session, settings, dispatcher, catalog):
        await _book(db_session, settings, dispatcher)
        second = await _book(db_session, settings, dispatcher, email="ALICE@example.com", date="2025-03-12")

        assert second.appointment.client["isReturningClient"] is True

    async def test_unknown_service_allowed_for_quick_booking(self, db_session, settings, dispatcher):
        result = await _book(db_session, settings, dispatcher, service="audit-seo")

        assert result.appointment.service_id is None
        assert result.appointment.service_snapshot["name"] == "audit-seo"

    async def test_unknown_service_rejected_for_detailed_booking(self, db_session, settings, dispatcher):
        booking = _booking()
        booking.detailed = True
        booking.consents = ConsentsIn(gdpr=ConsentIn(accepted=True))

        with pytest.raises(NotFoundError) as exc:
            await booking_service.book_appointment(db_session, booking, META, settings=settings, dispatcher=dispatcher)
        assert exc.value.message == "Service non trouvé ou indisponible"
        assert await _count(db_session) == 0

    async def test_calendar_failure_still_books(self, db_session, settings, catalog):
        dispatcher = NotificationDispatcher(
            email=FakeEmailProvider(), calendar=FakeCalendarProvider(fail=True), settings=settings
        )

        result = await _book(db_session, settings, dispatcher)

        assert result.notifications.calendar_created is False
        assert result.notifications.errors[0].startswith("Calendrier")
        assert await _count(db_session) == 1

    async def test_email_failure_keeps_row(self, db_session, settings, catalog):
        dispatcher = NotificationDispatcher(
            email=FakeEmailProvider(fail_for={"alice@example.com"}), settings=settings
        )

        with pytest.raises(NotificationDeliveryError) as exc:
            await _book(db_session, settings, dispatcher)

        assert exc.value.status_code == 500
        assert exc.value.details["appointmentId"] == exc.value.appointment_id
        assert exc.value.details["notifications"]["emailSent"] is False
        stored = await appointment_crud.get_appointment(db_session, exc.value.appointment_id)
        assert stored is not None
        assert stored.notifications["confirmation"]["sent"] is False


class TestAtomicInsert:
    async def test_lost_swap_is_retried(self, db_session, settings, monkeypatch):
        real_swap = appointment_crud._swap_version
        calls = []

        async def flaky_swap(db, resource, expected):
            calls.append(expected)
            if len(calls) == 1:
                return False
            return await real_swap(db, resource, expected)

        monkeypatch.setattr(appointment_crud, "_swap_version", flaky_swap)
        appt = build_appointment(_booking(), None, META, settings=settings)

        saved = await appointment_crud.create_appointment_atomic(db_session, appt, max_attempts=3)

        assert saved.id
        assert len(calls) == 2
        assert await _count(db_session) == 1

    async def test_gives_up_after_max_attempts(self, db_session, settings, monkeypatch):
        async def always_lose(db, resource, expected):
            return False

        monkeypatch.setattr(appointment_crud, "_swap_version", always_lose)
        appt = build_appointment(_booking(), None, META, settings=settings)

        with pytest.raises(ConflictError):
            await appointment_crud.create_appointment_atomic(db_session, appt, max_attempts=2)
        assert await _count(db_session) == 0

    async def test_token_collision_regenerates(self, db_session, settings):
        first = build_appointment(_booking(), None, META, settings=settings)
        await appointment_crud.create_appointment_atomic(db_session, first)
        taken = first.cancellation_token

        second = build_appointment(_booking(time="15:00"), None, META, settings=settings)
        second.cancellation_token = taken
        regenerated = []

        def regenerate(appt):
            regenerated.append(appt.cancellation_token)
            appt.cancellation_token = "fresh-token"

        saved = await appointment_crud.create_appointment_atomic(
            db_session, second, regenerate_tokens=regenerate
        )

        assert regenerated == [taken]
        assert saved.cancellation_token == "fresh-token"
        assert await _count(db_session) == 2


class TestUpdateAppointment:
    async def test_status_transition(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        updated = await booking_service.update_appointment(
            db_session, AppointmentUpdate(id=appt.id, status="confirmed"), settings=settings
        )
        assert updated.status == "confirmed"

        updated = await booking_service.update_appointment(
            db_session, AppointmentUpdate(id=appt.id, status="cancelled"), settings=settings
        )
        assert updated.status == "cancelled"
        assert updated.cancelled_at is not None

    async def test_cancelled_is_terminal(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment
        await booking_service.update_appointment(
            db_session, AppointmentUpdate(id=appt.id, status="cancelled"), settings=settings
        )

        with pytest.raises(ConflictError):
            await booking_service.update_appointment(
                db_session, AppointmentUpdate(id=appt.id, status="pending"), settings=settings
            )

    async def test_reschedule_moves_window(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        updated = await booking_service.update_appointment(
            db_session, AppointmentUpdate(id=appt.id, time="14:00"), settings=settings
        )

        assert updated.start_time == datetime(2025, 3, 10, 14, 0, tzinfo=UTC)
        assert (updated.end_time - updated.start_time).total_seconds() == 60 * 60

    async def test_reschedule_into_taken_window(self, db_session, settings, dispatcher):
        await _book(db_session, settings, dispatcher)
        second = (await _book(db_session, settings, dispatcher, email="bob@example.com", time="14:00")).appointment
        second_id = second.id

        with pytest.raises(SlotUnavailableError):
            await booking_service.update_appointment(
                db_session, AppointmentUpdate(id=second_id, time="10:30"), settings=settings
            )

        unchanged = await appointment_crud.get_appointment(db_session, second_id)
        assert unchanged.start_time == datetime(2025, 3, 10, 14, 0, tzinfo=UTC)

    async def test_bad_time_is_validation_error(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        with pytest.raises(BookingValidationError):
            await booking_service.update_appointment(
                db_session, AppointmentUpdate(id=appt.id, time="noon"), settings=settings
            )

    async def test_online_location_keeps_meeting_link(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment
        link = appt.location["meetingLink"]

        updated = await booking_service.update_appointment(
            db_session,
            AppointmentUpdate.model_validate({"_id": appt.id, "location": {"type": "online", "details": "Teams"}}),
            settings=settings,
        )

        assert updated.location["meetingLink"] == link
        assert updated.location["details"] == "Teams"

    async def test_phone_goes_into_client(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        updated = await booking_service.update_appointment(
            db_session, AppointmentUpdate(id=appt.id, phone="+225 01 02 03 04"), settings=settings
        )

        assert updated.client["phone"] == "+225 01 02 03 04"
        assert updated.client["name"] == "Alice"

    async def test_unknown_id(self, db_session, settings):
        with pytest.raises(NotFoundError):
            await booking_service.update_appointment(
                db_session, AppointmentUpdate(id="missing", status="confirmed"), settings=settings
            )


class TestTokenSelfService:
    async def test_cancel_once(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment
        token = appt.cancellation_token

        cancelled = await booking_service.cancel_by_token(db_session, token, settings=settings)
        assert cancelled.status == "cancelled"

        with pytest.raises(ConflictError):
            await booking_service.cancel_by_token(db_session, token, settings=settings)

    async def test_cancel_frees_the_slot(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment
        await booking_service.cancel_by_token(db_session, appt.cancellation_token, settings=settings)

        again = await _book(db_session, settings, dispatcher, email="bob@example.com")

        assert again.appointment.status == "pending"

    async def test_confirm_once(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        confirmed = await booking_service.confirm_by_token(db_session, appt.confirmation_token, settings=settings)
        assert confirmed.status == "confirmed"

        with pytest.raises(ConflictError):
            await booking_service.confirm_by_token(db_session, appt.confirmation_token, settings=settings)

    async def test_confirmation_token_spent_after_reschedule(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment
        token = appt.confirmation_token

        confirmed = await booking_service.confirm_by_token(db_session, token, settings=settings)
        assert confirmed.confirmed_at is not None

        moved_back = await booking_service.update_appointment(
            db_session, AppointmentUpdate(id=appt.id, status="scheduled"), settings=settings
        )
        assert moved_back.status == "scheduled"

        with pytest.raises(ConflictError):
            await booking_service.confirm_by_token(db_session, token, settings=settings)

        stored = await appointment_crud.get_appointment(db_session, appt.id)
        assert stored.status == "scheduled"

    async def test_confirmation_token_is_not_a_manage_token(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        with pytest.raises(NotFoundError):
            await booking_service.get_by_manage_token(db_session, appt.confirmation_token)

    async def test_remove_appointment(self, db_session, settings, dispatcher):
        appt = (await _book(db_session, settings, dispatcher)).appointment

        await booking_service.remove_appointment(db_session, appt.id)

        assert await _count(db_session) == 0
        with pytest.raises(NotFoundError):
            await booking_service.remove_appointment(db_session, appt.id)
