"""Routes alertes d'entretien / Maintenance notification routes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.api.deps import get_scheduler
from fleet_upkeep.config import settings
from fleet_upkeep.database import get_db
from fleet_upkeep.rate_limit import limiter
from fleet_upkeep.schemas.notification import CheckResult, NotificationRead, NotificationStats, UnreadCount
from fleet_upkeep.services.notification_engine import NotificationEngine
from fleet_upkeep.services.scheduler import MaintenanceScheduler

router = APIRouter()


@router.get("/", response_model=list[NotificationRead])
async def active_notifications(db: AsyncSession = Depends(get_db)):
    """Alertes actives / Active notifications."""
    return await NotificationEngine.active_notifications(db)


@router.get("/vehicle/{vehicle_id}", response_model=list[NotificationRead])
async def notifications_for_vehicle(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    """Historique des alertes d'un vehicule / Notification history of a vehicle."""
    return await NotificationEngine.notifications_for_vehicle(db, vehicle_id)


@router.get("/count", response_model=UnreadCount)
async def unread_count(db: AsyncSession = Depends(get_db)):
    return {"unread": await NotificationEngine.unread_count(db)}


@router.get("/stats", response_model=NotificationStats)
async def notification_stats(db: AsyncSession = Depends(get_db)):
    return await NotificationEngine.stats(db)


@router.patch("/read-all", status_code=204)
async def mark_all_read(db: AsyncSession = Depends(get_db)):
    await NotificationEngine.mark_all_read(db)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(notification_id: int, db: AsyncSession = Depends(get_db)):
    return await NotificationEngine.mark_read(db, notification_id)


@router.patch("/{notification_id}/deactivate", response_model=NotificationRead)
async def deactivate(notification_id: int, db: AsyncSession = Depends(get_db)):
    return await NotificationEngine.deactivate_by_id(db, notification_id)


@router.post("/check/{vehicle_id}", response_model=CheckResult)
@limiter.limit(settings.RATE_LIMIT_TRIGGER)
async def trigger_check(
    request: Request,
    vehicle_id: int,
    scheduler: MaintenanceScheduler = Depends(get_scheduler),
):
    """Verification immediate d'un vehicule / Immediate check for one vehicle."""
    created = await scheduler.check_vehicle(vehicle_id)
    return {"created_count": 1 if created else 0}


@router.post("/check", response_model=CheckResult)
@limiter.limit(settings.RATE_LIMIT_TRIGGER)
async def trigger_check_all(
    request: Request,
    scheduler: MaintenanceScheduler = Depends(get_scheduler),
):
    """Balayage complet a la demande / On-demand full sweep."""
    return {"created_count": await scheduler.check_all()}
