# studio_booking/api/routes/services.py

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.api.auth import require_admin_key
from studio_booking.core.errors import BookingValidationError, NotFoundError
from studio_booking.core.logging import get_logger
from studio_booking.crud.service import (
    create_service,
    delete_service,
    get_service,
    list_services,
    update_service,
)
from studio_booking.db.session import get_session
from studio_booking.schemas.service import ServiceCreate, ServiceUpdate, json_fields

router = APIRouter(prefix="/api/v1/services", tags=["services"])
logger = get_logger(__name__)

SERVICE_NOT_FOUND = "Service non trouvé"


def _require_id(id: Optional[str]) -> str:
    if not id or not id.strip():
        raise BookingValidationError("ID du service requis")
    return id.strip()


@router.get("")
async def list_services_ep(
    db: AsyncSession = Depends(get_session),
    category: Optional[str] = Query(None, description="Filter by category"),
    active: Optional[bool] = Query(None, description="Filter on isActive"),
    limit: Optional[int] = Query(None, ge=1, description="Max rows; all when omitted"),
):
    rows = await list_services(db, category=category, active=active, limit=limit)
    return {"success": True, "data": [s.to_dict() for s in rows], "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin_key)])
async def create_service_ep(payload: ServiceCreate, db: AsyncSession = Depends(get_session)):
    service = await create_service(db, json_fields(payload))
    logger.info("service_created", service_id=service.id, slug=service.slug)
    return {"success": True, "data": service.to_dict(), "message": "Service créé avec succès"}


@router.put("", dependencies=[Depends(require_admin_key)])
async def update_service_ep(
    payload: ServiceUpdate,
    id: Optional[str] = Query(None, description="Service id"),
    db: AsyncSession = Depends(get_session),
):
    service = await get_service(db, _require_id(id))
    if service is None:
        raise NotFoundError(SERVICE_NOT_FOUND)
    service = await update_service(db, service, json_fields(payload, exclude_unset=True))
    logger.info("service_updated", service_id=service.id)
    return {"success": True, "data": service.to_dict(), "message": "Service mis à jour avec succès"}


@router.delete("", dependencies=[Depends(require_admin_key)])
async def delete_service_ep(
    id: Optional[str] = Query(None, description="Service id"),
    db: AsyncSession = Depends(get_session),
):
    service_id = _require_id(id)
    if not await delete_service(db, service_id):
        raise NotFoundError(SERVICE_NOT_FOUND)
    logger.info("service_deleted", service_id=service_id)
    return {"success": True, "message": "Service supprimé avec succès"}
