#!/usr/bin/env python3
"""
Window overlap rules and the database-backed availability check.
"""

from datetime import datetime, timedelta, timezone

import pytest

from studio_booking.db.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, Appointment
from studio_booking.services.availability import is_slot_available, overlaps, window
from studio_booking.services.tokens import assign_tokens

UTC = timezone.utc
T10 = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)


def _appointment(start: datetime, minutes: int = 60, status: str = "pending", resource: str = "consultant"):
    appt = Appointment(
        service_snapshot={"name": "Test", "slug": "test", "price": 0, "currency": "EUR", "category": None},
        client={"name": "Test"},
        client_email="test@example.com",
        resource=resource,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration_min=minutes,
        location={"type": "online"},
        project={},
        consents={},
        analytics={},
        status=status,
    )
    assign_tokens(appt)
    return appt


class TestOverlaps:
    @pytest.mark.unit
    def test_identical_windows_overlap(self):
        assert overlaps(T10, T10 + timedelta(hours=1), T10, T10 + timedelta(hours=1))

    @pytest.mark.unit
    def test_partial_overlap(self):
        assert overlaps(T10, T10 + timedelta(hours=1), T10 + timedelta(minutes=30), T10 + timedelta(hours=2))

    @pytest.mark.unit
    def test_touching_windows_do_not_overlap(self):
        assert not overlaps(T10, T10 + timedelta(hours=1), T10 + timedelta(hours=1), T10 + timedelta(hours=2))
        assert not overlaps(T10 + timedelta(hours=1), T10 + timedelta(hours=2), T10, T10 + timedelta(hours=1))

    @pytest.mark.unit
    def test_containment_overlaps(self):
        assert overlaps(T10, T10 + timedelta(hours=3), T10 + timedelta(hours=1), T10 + timedelta(hours=2))

    @pytest.mark.unit
    def test_window_treats_naive_as_utc(self):
        start, end = window(datetime(2025, 3, 10, 10, 0), 90)
        assert start == T10
        assert end - start == timedelta(minutes=90)


class TestIsSlotAvailable:
    async def test_empty_store_is_free(self, db_session):
        assert await is_slot_available(db_session, T10, T10 + timedelta(hours=1), resource="consultant")

    async def test_rejects_inverted_window(self, db_session):
        with pytest.raises(ValueError):
            await is_slot_available(db_session, T10, T10, resource="consultant")

    async def test_blocking_statuses(self, db_session):
        db_session.add(_appointment(T10, status=STATUS_CONFIRMED))
        await db_session.commit()

        assert not await is_slot_available(
            db_session, T10 + timedelta(minutes=30), T10 + timedelta(minutes=90), resource="consultant"
        )
        assert await is_slot_available(
            db_session, T10 + timedelta(hours=1), T10 + timedelta(hours=2), resource="consultant"
        )

    async def test_cancelled_frees_the_window(self, db_session):
        db_session.add(_appointment(T10, status=STATUS_CANCELLED))
        await db_session.commit()

        assert await is_slot_available(db_session, T10, T10 + timedelta(hours=1), resource="consultant")

    async def test_other_resource_does_not_block(self, db_session):
        db_session.add(_appointment(T10, resource="studio-b"))
        await db_session.commit()

        assert await is_slot_available(db_session, T10, T10 + timedelta(hours=1), resource="consultant")

    async def test_exclude_self(self, db_session):
        appt = _appointment(T10)
        db_session.add(appt)
        await db_session.commit()

        assert await is_slot_available(
            db_session, T10, T10 + timedelta(hours=1), resource="consultant", exclude_id=appt.id
        )
