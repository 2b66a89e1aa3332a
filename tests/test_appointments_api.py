#!/usr/bin/env python3
"""
End-to-end appointment scenarios through the HTTP API.
"""

from datetime import date, timedelta

import pytest
import sqlalchemy as sa

from conftest import ADMIN_HEADERS

from studio_booking.db.models.appointment import Appointment

pytestmark = pytest.mark.integration

URL = "/api/v1/appointments"


async def _rows(database):
    async with database.session() as s:
        return (await s.execute(sa.select(Appointment))).scalars().all()


async def _cancellation_token(database, appointment_id):
    async with database.session() as s:
        return (await s.get(Appointment, appointment_id)).cancellation_token


class TestCreateAppointment:
    async def test_alice_books_on_empty_store(self, client, database, alice_request):
        response = await client.post(URL, json=alice_request)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Rendez-vous créé avec succès"
        assert body["data"]["status"] == "pending"
        assert body["data"]["date"] == "2025-03-10"
        assert body["data"]["time"] == "10:00"
        assert body["emailSent"] is True
        assert body["notifications"]["emailSent"] is True
        assert "cancellationToken" not in body["data"]

        rows = await _rows(database)
        assert len(rows) == 1
        assert rows[0].status == "pending"

    async def test_repeat_request_conflicts(self, client, database, alice_request):
        first = await client.post(URL, json=alice_request)
        second = await client.post(URL, json=alice_request)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["success"] is False
        assert second.json()["error"] == "Ce créneau n'est plus disponible"
        assert len(await _rows(database)) == 1

    async def test_missing_email_rejected_without_side_effects(self, client, database, email_provider, alice_request):
        del alice_request["email"]

        response = await client.post(URL, json=alice_request)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Champs obligatoires manquants"}
        assert await _rows(database) == []
        assert email_provider.sent == []

    async def test_malformed_email(self, client, database, alice_request):
        alice_request["email"] = "alice@example"

        response = await client.post(URL, json=alice_request)

        assert response.status_code == 400
        assert response.json()["error"] == "Format d'email invalide"
        assert await _rows(database) == []

    async def test_bad_date(self, client, alice_request):
        alice_request["date"] = "10/03/2025"

        response = await client.post(URL, json=alice_request)

        assert response.status_code == 400
        assert "YYYY-MM-DD" in response.json()["error"]

    async def test_non_object_body(self, client):
        response = await client.post(URL, json=["not", "an", "object"])

        assert response.status_code == 400

    async def test_catalog_service_is_snapshotted(self, client, catalog, alice_request):
        response = await client.post(URL, json=alice_request)

        data = response.json()["data"]
        assert data["service"] == catalog["developpement-web"].id
        assert data["serviceSnapshot"]["price"] == 2500
        assert data["appointment"]["duration"] == 90

    async def test_detailed_booking(self, client, database, detailed_request, contacts_provider):
        response = await client.post(URL, json=detailed_request)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["client"]["name"] == "Bruno Koffi"
        assert data["client"]["company"] == "Koffi SARL"
        assert data["appointment"]["location"]["meetingLink"]
        assert data["consents"]["gdpr"]["accepted"] is True
        assert data["project"]["budget"] == "5k-10k"
        assert response.json()["notifications"]["contactAdded"] is True
        assert len(contacts_provider.contacts) == 1

    async def test_detailed_booking_requires_gdpr(self, client, database, detailed_request):
        detailed_request["consents"]["gdpr"]["accepted"] = False

        response = await client.post(URL, json=detailed_request)

        assert response.status_code == 400
        assert response.json()["error"] == "Données manquantes ou consentement RGPD requis"
        assert await _rows(database) == []

    async def test_detailed_booking_missing_client_email(self, client, database, detailed_request):
        del detailed_request["client"]["email"]

        response = await client.post(URL, json=detailed_request)

        assert response.status_code == 400
        assert response.json()["error"] == "Données manquantes ou consentement RGPD requis"

    async def test_detailed_booking_unknown_service(self, client, database, detailed_request):
        detailed_request["serviceId"] = "does-not-exist"

        response = await client.post(URL, json=detailed_request)

        assert response.status_code == 404
        assert response.json()["error"] == "Service non trouvé ou indisponible"
        assert await _rows(database) == []


class TestNotificationFailures:
    async def test_calendar_failure_is_invisible_to_client(self, client, calendar_provider, alice_request):
        calendar_provider.fail = True

        response = await client.post(URL, json=alice_request)

        assert response.status_code == 201
        notifications = response.json()["notifications"]
        assert notifications["emailSent"] is True
        assert notifications["calendarCreated"] is False
        assert len(notifications["errors"]) == 1
        assert "Calendrier" in notifications["errors"][0]

    async def test_client_email_failure_is_500_but_row_kept(self, client, database, email_provider, alice_request):
        email_provider.fail_for = {"alice@example.com"}

        response = await client.post(URL, json=alice_request)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        rows = await _rows(database)
        assert len(rows) == 1
        assert body["details"]["appointmentId"] == rows[0].id


class TestAdminEndpoints:
    async def test_list_and_filter(self, client, alice_request):
        await client.post(URL, json=alice_request)
        await client.post(URL, json={**alice_request, "email": "bob@example.com", "time": "15:00"})

        everything = await client.get(URL, headers=ADMIN_HEADERS)
        bob = await client.get(URL, params={"email": "BOB@example.com"}, headers=ADMIN_HEADERS)

        assert everything.json()["count"] == 2
        assert [a["time"] for a in everything.json()["data"]] == ["10:00", "15:00"]
        assert bob.json()["count"] == 1
        assert bob.json()["data"][0]["email"] == "bob@example.com"

    async def test_list_returns_every_appointment(self, client, alice_request):
        first_day = date(2025, 3, 10)
        for offset in range(105):
            day = (first_day + timedelta(days=offset)).isoformat()
            created = await client.post(URL, json={**alice_request, "date": day})
            assert created.status_code == 201

        everything = await client.get(URL, headers=ADMIN_HEADERS)
        first_page = await client.get(URL, params={"limit": 10}, headers=ADMIN_HEADERS)

        assert everything.json()["count"] == 105
        assert len(everything.json()["data"]) == 105
        assert first_page.json()["count"] == 10
        assert first_page.json()["data"][0]["date"] == "2025-03-10"

    async def test_list_rejects_unknown_status(self, client):
        response = await client.get(URL, params={"status": "done"}, headers=ADMIN_HEADERS)

        assert response.status_code == 400

    async def test_update_status(self, client, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]

        response = await client.put(URL, json={"_id": created["_id"], "status": "confirmed"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "confirmed"

    async def test_update_requires_id(self, client):
        response = await client.put(URL, json={"status": "confirmed"}, headers=ADMIN_HEADERS)

        assert response.status_code == 400
        assert response.json()["error"] == "ID du rendez-vous requis"

    async def test_update_unknown_field(self, client, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]

        response = await client.put(URL, json={"_id": created["_id"], "price": 0}, headers=ADMIN_HEADERS)

        assert response.status_code == 400

    async def test_update_unknown_id(self, client):
        response = await client.put(URL, json={"_id": "missing", "status": "confirmed"}, headers=ADMIN_HEADERS)

        assert response.status_code == 404

    async def test_reschedule_conflict(self, client, alice_request):
        await client.post(URL, json=alice_request)
        other = (await client.post(URL, json={**alice_request, "email": "bob@example.com", "time": "15:00"})).json()

        response = await client.put(
            URL, json={"_id": other["data"]["_id"], "time": "10:30"}, headers=ADMIN_HEADERS
        )

        assert response.status_code == 409

    async def test_delete(self, client, database, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]

        deleted = await client.delete(URL, params={"id": created["_id"]}, headers=ADMIN_HEADERS)
        again = await client.delete(URL, params={"id": created["_id"]}, headers=ADMIN_HEADERS)
        no_id = await client.delete(URL, headers=ADMIN_HEADERS)

        assert deleted.status_code == 200
        assert again.status_code == 404
        assert no_id.status_code == 400
        assert await _rows(database) == []

    async def test_mutations_need_admin_key(self, client):
        assert (await client.put(URL, json={"_id": "x"})).status_code == 401
        assert (await client.delete(URL, params={"id": "x"})).status_code == 401


class TestTokenSelfService:
    async def test_cancel_frees_the_slot(self, client, database, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]
        token = await _cancellation_token(database, created["_id"])

        cancelled = await client.post(f"{URL}/manage/{token}/cancel")
        rebooked = await client.post(URL, json={**alice_request, "email": "bob@example.com"})

        assert cancelled.status_code == 200
        assert cancelled.json()["data"]["status"] == "cancelled"
        assert rebooked.status_code == 201

    async def test_cancellation_token_works_once(self, client, database, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]
        token = await _cancellation_token(database, created["_id"])

        first = await client.post(f"{URL}/manage/{token}/cancel")
        second = await client.post(f"{URL}/manage/{token}/cancel")

        assert first.status_code == 200
        assert second.status_code == 409

    async def test_view_by_token(self, client, database, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]
        token = await _cancellation_token(database, created["_id"])

        response = await client.get(f"{URL}/manage/{token}")

        assert response.status_code == 200
        assert response.json()["data"]["_id"] == created["_id"]

    async def test_confirm_by_token(self, client, alice_request):
        created = (await client.post(URL, json=alice_request)).json()["data"]
        token = created["confirmationToken"]

        first = await client.post(f"{URL}/manage/{token}/confirm")
        second = await client.post(f"{URL}/manage/{token}/confirm")

        assert first.status_code == 200
        assert first.json()["data"]["status"] == "confirmed"
        assert second.status_code == 409

    async def test_unknown_token(self, client):
        response = await client.post(f"{URL}/manage/not-a-token/cancel")

        assert response.status_code == 404


class TestSuggestedSlots:
    async def test_morning_slots(self, client, catalog):
        service_id = catalog["consultation-strategique"].id

        response = await client.get(f"{URL}/suggested-slots/{service_id}", params={"preference": "morning"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["serviceId"] == service_id
        assert [s["startTime"] for s in data["suggestedSlots"]] == ["09:00", "10:00", "11:00"]
        assert [s["endTime"] for s in data["suggestedSlots"]] == ["10:00", "11:00", "12:00"]
        assert all(s["price"] == 150 for s in data["suggestedSlots"])

    async def test_slug_is_accepted(self, client, catalog):
        response = await client.get(f"{URL}/suggested-slots/developpement-web")

        assert response.status_code == 200
        assert len(response.json()["data"]["suggestedSlots"]) == 9

    async def test_booked_slots_are_hidden(self, client, catalog, alice_request):
        await client.post(URL, json=alice_request)

        response = await client.get(
            f"{URL}/suggested-slots/developpement-web",
            params={"preference": "morning", "date": "2025-03-10"},
        )

        # 10:00-11:30 is taken
        assert [s["startTime"] for s in response.json()["data"]["suggestedSlots"]] == ["09:00"]

    async def test_service_outside_catalog(self, client):
        response = await client.get(
            f"{URL}/suggested-slots/developpement-web", params={"preference": "morning"}
        )

        assert response.status_code == 200
        slots = response.json()["data"]["suggestedSlots"]
        assert [s["startTime"] for s in slots] == ["09:00", "10:00", "11:00"]
        assert all(s["price"] is None for s in slots)
        assert slots[0]["id"] == "developpement-web-any-09:00"

    async def test_bad_date(self, client, catalog):
        response = await client.get(f"{URL}/suggested-slots/developpement-web", params={"date": "tomorrow"})

        assert response.status_code == 400
