"""Routes passages atelier / Service visit routes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.api.deps import get_scheduler
from fleet_upkeep.config import settings
from fleet_upkeep.database import get_db
from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.service_visit import ServiceVisit, ServiceVisitStatus
from fleet_upkeep.rate_limit import limiter
from fleet_upkeep.schemas.fleet import ServiceVisitCreate, ServiceVisitRead, ServiceVisitStatusUpdate
from fleet_upkeep.services.recorders import change_service_visit_status, create_service_visit
from fleet_upkeep.services.scheduler import MaintenanceScheduler

router = APIRouter()


@router.get("/", response_model=list[ServiceVisitRead])
async def list_service_visits(
    vehicle_id: int | None = None,
    status: ServiceVisitStatus | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(ServiceVisit).order_by(ServiceVisit.started_at.desc())
    if vehicle_id is not None:
        query = query.where(ServiceVisit.vehicle_id == vehicle_id)
    if status is not None:
        query = query.where(ServiceVisit.status == status)
    result = await db.execute(query.limit(500))
    return result.scalars().all()


@router.get("/{visit_id}", response_model=ServiceVisitRead)
async def get_service_visit(visit_id: int, db: AsyncSession = Depends(get_db)):
    visit = await db.get(ServiceVisit, visit_id)
    if not visit:
        raise NotFoundError("ServiceVisit", visit_id)
    return visit


@router.post("/", response_model=ServiceVisitRead, status_code=201)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def create_visit(request: Request, data: ServiceVisitCreate, db: AsyncSession = Depends(get_db)):
    """Creer un passage atelier / Create a service visit."""
    return await create_service_visit(db, data)


@router.patch("/{visit_id}/status", response_model=ServiceVisitRead)
async def update_visit_status(
    visit_id: int,
    data: ServiceVisitStatusUpdate,
    db: AsyncSession = Depends(get_db),
    scheduler: MaintenanceScheduler = Depends(get_scheduler),
):
    """Changer le statut / Change status (COMPLETED efface l'alerte / clears the notification)."""
    return await change_service_visit_status(db, visit_id, data.status, scheduler)
