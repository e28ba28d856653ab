"""Routes rappels d'entretien / Maintenance reminder routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.api.deps import get_scheduler
from fleet_upkeep.database import get_db
from fleet_upkeep.schemas.reminder import ReminderRead, ReminderSettingsRead, ReminderSettingsUpsert
from fleet_upkeep.services import reminders as reminder_service
from fleet_upkeep.services.scheduler import MaintenanceScheduler

router = APIRouter()


# ─── Reglages / Settings ───

@router.get("/settings", response_model=list[ReminderSettingsRead])
async def list_settings(db: AsyncSession = Depends(get_db)):
    return await reminder_service.list_settings(db)


@router.put("/settings", response_model=ReminderSettingsRead)
async def upsert_settings(
    data: ReminderSettingsUpsert,
    db: AsyncSession = Depends(get_db),
    scheduler: MaintenanceScheduler = Depends(get_scheduler),
):
    """Creer ou modifier puis re-verifier / Create or update then re-check the vehicle."""
    return await reminder_service.upsert_settings(db, data, scheduler)


@router.get("/settings/{vehicle_id}", response_model=ReminderSettingsRead)
async def get_settings(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    return await reminder_service.get_settings(db, vehicle_id)


@router.delete("/settings/{vehicle_id}", status_code=204)
async def delete_settings(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    """Supprimer les reglages et desactiver l'alerte / Delete settings and deactivate the notification."""
    await reminder_service.delete_settings(db, vehicle_id)


# ─── Echeances / Reminders ───

@router.get("/", response_model=list[ReminderRead])
async def list_reminders(db: AsyncSession = Depends(get_db)):
    return await reminder_service.all_reminders(db)


@router.get("/attention", response_model=list[ReminderRead])
async def reminders_requiring_attention(db: AsyncSession = Depends(get_db)):
    """Vehicules en alerte ou en retard / Vehicles in warning or overdue."""
    return await reminder_service.reminders_requiring_attention(db)


@router.get("/vehicle/{vehicle_id}", response_model=ReminderRead)
async def reminder_for_vehicle(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    return await reminder_service.reminder_for_vehicle(db, vehicle_id)
