# studio_booking/crud/service.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.errors import ConflictError
from studio_booking.db.models.service import Service

# camelCase request keys -> model attributes
_FIELD_MAP = {
    "name": "name",
    "slug": "slug",
    "category": "category",
    "description": "description",
    "shortDescription": "short_description",
    "features": "features",
    "technologies": "technologies",
    "deliverables": "deliverables",
    "pricing": "pricing",
    "duration": "duration",
    "availability": "availability",
    "requirements": "requirements",
    "displayOrder": "display_order",
    "icon": "icon",
    "color": "color",
    "isActive": "is_active",
}


_NULLABLE = {"description", "short_description", "icon"}


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {_FIELD_MAP[k]: v for k, v in data.items() if k in _FIELD_MAP}


async def get_service(db: AsyncSession, service_id: str) -> Optional[Service]:
    return await db.get(Service, service_id)


async def get_service_by_ref(db: AsyncSession, ref: str, *, active_only: bool = False) -> Optional[Service]:
    """Look a service up by id, then by slug."""
    q = sa.select(Service).where(sa.or_(Service.id == ref, Service.slug == ref))
    if active_only:
        q = q.where(Service.is_active.is_(True))
    res = await db.execute(q.limit(1))
    return res.scalar_one_or_none()


async def list_services(
    db: AsyncSession,
    *,
    category: Optional[str] = None,
    active: Optional[bool] = None,
    limit: Optional[int] = None,
) -> Sequence[Service]:
    q = sa.select(Service)
    if category is not None:
        q = q.where(Service.category == category)
    if active is not None:
        q = q.where(Service.is_active.is_(active))
    q = q.order_by(Service.display_order.asc(), Service.name.asc())
    if limit is not None:
        q = q.limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


async def create_service(db: AsyncSession, data: dict[str, Any]) -> Service:
    now = datetime.now(timezone.utc)
    service = Service(**_to_columns(data), created_at=now, updated_at=now)
    db.add(service)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Un service avec le slug '{data.get('slug')}' existe déjà")
    return service


async def update_service(db: AsyncSession, service: Service, changes: dict[str, Any]) -> Service:
    for attr, value in _to_columns(changes).items():
        if value is None and attr not in _NULLABLE:
            continue
        setattr(service, attr, value)
    service.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return service


async def delete_service(db: AsyncSession, service_id: str) -> bool:
    res = await db.execute(sa.delete(Service).where(Service.id == service_id))
    await db.commit()
    return res.rowcount > 0


async def reset_services(db: AsyncSession, catalog: Iterable[dict[str, Any]]) -> list[Service]:
    """Drop every service and insert the given catalog in one transaction."""
    await db.execute(sa.delete(Service))
    now = datetime.now(timezone.utc)
    services = [Service(**_to_columns(entry), created_at=now, updated_at=now) for entry in catalog]
    db.add_all(services)
    await db.commit()
    return services


def increment_bookings_stmt(service_id: str) -> sa.Update:
    return (
        sa.update(Service)
        .where(Service.id == service_id)
        .values(
            total_bookings=Service.total_bookings + 1,
            updated_at=datetime.now(timezone.utc),
        )
    )
