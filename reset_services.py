#!/usr/bin/env python3
"""
Replace the service catalog with the built-in one.

Every entry is validated through ServiceCreate first, so a bad catalog edit
fails before anything is deleted.

    DATABASE_URL=sqlite+aiosqlite:///./data/studio.db python reset_services.py
"""

import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from pydantic import ValidationError

from studio_booking.core.config import Settings
from studio_booking.core.logging import get_logger, setup_logging
from studio_booking.crud.service import reset_services
from studio_booking.db.catalog import SERVICE_CATALOG
from studio_booking.db.session import Database
from studio_booking.schemas.service import ServiceCreate, json_fields

logger = get_logger("reset_services")


def validated_catalog() -> list[dict]:
    return [json_fields(ServiceCreate.model_validate(entry)) for entry in SERVICE_CATALOG]


async def main() -> int:
    settings = Settings()
    setup_logging(debug=settings.is_development, level=settings.LOG_LEVEL)

    try:
        catalog = validated_catalog()
    except ValidationError as e:
        logger.error("catalog_invalid", error=str(e))
        return 1

    database = Database(settings.async_db_uri).connect()
    try:
        if settings.DB_CREATE_ALL:
            await database.create_all()
        async with database.session() as db:
            services = await reset_services(db, catalog)
        logger.info("services_reset", count=len(services), slugs=[s.slug for s in services])
    finally:
        await database.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
