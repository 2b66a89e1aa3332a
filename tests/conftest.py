#!/usr/bin/env python3
"""
Shared fixtures: in-memory SQLite database, seeded service catalog, fake
notification providers and an ASGI client bound to a fresh app.
"""

import os
import sys

import httpx
import pytest
import pytest_asyncio

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mocks.external_services import FakeCalendarProvider, FakeContactsProvider, FakeEmailProvider

from studio_booking.core.config import Settings
from studio_booking.crud.service import reset_services
from studio_booking.db.catalog import SERVICE_CATALOG
from studio_booking.db.session import Database
from studio_booking.main import create_app
from studio_booking.schemas.service import ServiceCreate, json_fields
from studio_booking.services.notifications import NotificationDispatcher

# Test database configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ADMIN_KEY = "test-admin-key"
ADMIN_HEADERS = {"X-API-Key": ADMIN_KEY}


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL=TEST_DATABASE_URL,
        APP_ENV="testing",
        BUSINESS_TIMEZONE="Africa/Abidjan",
        ADMIN_API_KEY=ADMIN_KEY,
        ADMIN_EMAIL="admin@studio.test",
        EMAIL_PROVIDER="log",
        CALENDAR_PROVIDER="none",
        CONTACTS_PROVIDER="none",
        EMAIL_TIMEOUT_SECONDS=1.0,
        PROVIDER_TIMEOUT_SECONDS=1.0,
        PUBLIC_BASE_URL="https://studio.test",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest_asyncio.fixture
async def database():
    db = Database(TEST_DATABASE_URL).connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(database):
    """The built-in services, keyed by slug."""
    entries = [json_fields(ServiceCreate.model_validate(e)) for e in SERVICE_CATALOG]
    async with database.session() as session:
        services = await reset_services(session, entries)
    return {s.slug: s for s in services}


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def calendar_provider():
    return FakeCalendarProvider()


@pytest.fixture
def contacts_provider():
    return FakeContactsProvider()


@pytest.fixture
def dispatcher(settings, email_provider, calendar_provider, contacts_provider):
    return NotificationDispatcher(
        email=email_provider,
        calendar=calendar_provider,
        contacts=contacts_provider,
        settings=settings,
    )


@pytest.fixture
def app(settings, database, dispatcher):
    return create_app(settings=settings, database=database, dispatcher=dispatcher)


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def alice_request():
    return {
        "name": "Alice",
        "email": "alice@example.com",
        "service": "developpement-web",
        "date": "2025-03-10",
        "time": "10:00",
    }


@pytest.fixture
def detailed_request(catalog):
    return {
        "serviceId": catalog["consultation-strategique"].id,
        "client": {
            "firstName": "Bruno",
            "lastName": "Koffi",
            "email": "bruno@example.com",
            "phone": "+225 07 00 00 00",
            "company": {"name": "Koffi SARL"},
        },
        "appointment": {
            "startTime": "2025-03-11T14:00:00Z",
            "location": {"type": "online"},
        },
        "project": {"description": "Refonte du site vitrine", "budget": "5k-10k"},
        "consents": {"gdpr": {"accepted": True}, "marketing": {"accepted": False}},
    }


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no database")
    config.addinivalue_line("markers", "integration: Tests that go through the HTTP app")
