#!/usr/bin/env python3
"""
Tests for the Google Calendar provider.
"""

import pytest
import sys
import os
from unittest.mock import patch, MagicMock

# Add app to Python path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from googleapiclient.errors import HttpError

from studio_booking.services.email_templates import AppointmentNotice
from studio_booking.services.google_calendar import CalendarProviderError, GoogleCalendarProvider


@pytest.fixture
def notice():
    """Online consultation, 90 minutes"""
    return AppointmentNotice(
        appointment_id='a1',
        name='John Smith',
        email='john@example.com',
        phone=None,
        service='Développement Web',
        date='2025-03-10',
        time='10:00',
        date_label='lundi 10 mars 2025',
        start_utc='2025-03-10T10:00:00+00:00',
        end_utc='2025-03-10T11:30:00+00:00',
        duration_min=90,
        message='Refonte du site',
        location_type='online',
        meeting_link='https://meet.google.com/abc',
        address=None,
        manage_url='https://studio.test/appointments/manage/tok',
    )


@pytest.fixture
def provider():
    return GoogleCalendarProvider(
        service_account_json='{"type": "service_account"}',
        calendar_id='consultant@group.calendar.google.com',
        organizer_email='studio@example.com',
        organizer_name='Studio',
    )


class TestGoogleCalendarService:
    """Test client construction from the service account"""

    def test_missing_credentials(self):
        provider = GoogleCalendarProvider(service_account_json=None)
        with pytest.raises(CalendarProviderError) as exc:
            provider.get_service()
        assert exc.value.code == 'config'

    def test_invalid_json(self):
        provider = GoogleCalendarProvider(service_account_json='invalid_json')
        with pytest.raises(CalendarProviderError):
            provider.get_service()

    @patch('studio_booking.services.google_calendar.build')
    @patch('studio_booking.services.google_calendar.service_account.Credentials.from_service_account_info')
    def test_service_is_built_once(self, mock_credentials, mock_build, provider):
        mock_build.return_value = MagicMock()

        first = provider.get_service()
        second = provider.get_service()

        assert first is second
        mock_build.assert_called_once()
        assert mock_build.call_args.kwargs['cache_discovery'] is False
        mock_credentials.assert_called_once()


class TestCalendarEventOperations:
    """Test event creation"""

    def test_event_body(self, provider, notice):
        body = provider.event_body(notice)

        assert body['summary'] == 'Consultation - Développement Web (John Smith)'
        assert body['start'] == {'dateTime': '2025-03-10T10:00:00+00:00', 'timeZone': 'UTC'}
        assert body['end'] == {'dateTime': '2025-03-10T11:30:00+00:00', 'timeZone': 'UTC'}
        assert body['location'] == 'https://meet.google.com/abc'
        assert 'Non renseigné' in body['description']
        assert body['attendees'][0]['email'] == 'studio@example.com'

    @pytest.mark.asyncio
    async def test_create_event_success(self, provider, notice):
        mock_calendar_service = MagicMock()
        mock_calendar_service.events().insert().execute.return_value = {
            'id': 'test_event_123',
            'htmlLink': 'https://calendar.google.com/event?eid=test123',
        }

        with patch.object(provider, 'get_service', return_value=mock_calendar_service):
            result = await provider.create_event(notice)

        assert result == {
            'eventId': 'test_event_123',
            'webLink': 'https://calendar.google.com/event?eid=test123',
        }
        _, kwargs = mock_calendar_service.events().insert.call_args
        assert kwargs['calendarId'] == 'consultant@group.calendar.google.com'

    @pytest.mark.asyncio
    async def test_create_event_api_error(self, provider, notice):
        mock_calendar_service = MagicMock()
        mock_calendar_service.events().insert().execute.side_effect = HttpError(
            resp=MagicMock(status=403),
            content=b'Forbidden'
        )

        with patch.object(provider, 'get_service', return_value=mock_calendar_service):
            with pytest.raises(CalendarProviderError) as exc:
                await provider.create_event(notice)

        assert exc.value.status_code == 403
