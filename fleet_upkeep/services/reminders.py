"""
Service reglages de rappel / Reminder settings service.

Les valeurs par defaut (seuil, activation) sont appliquees une seule fois, a la
creation, depuis la configuration.
Defaults (threshold, enabled) are applied once, at creation, from configuration.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.config import settings as app_settings
from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.schemas.reminder import ReminderSettingsUpsert, ReminderStatus
from fleet_upkeep.services.maintenance_schedule import MaintenanceScheduleCalculator
from fleet_upkeep.services.notification_engine import NotificationEngine
from fleet_upkeep.services.scheduler import MaintenanceScheduler
from fleet_upkeep.services.vehicle_locks import VehicleLocks, vehicle_locks

log = logging.getLogger(__name__)


@dataclass
class Reminder:
    vehicle_id: int
    vehicle_label: str
    current_km: int
    status: ReminderStatus
    message: str
    service_interval_km: int | None = None
    km_to_next_service: int | None = None
    last_service_km: int | None = None
    last_service_at: str | None = None
    completed_service_count: int = 0


async def get_settings(db: AsyncSession, vehicle_id: int) -> ReminderSettings:
    result = await db.execute(
        select(ReminderSettings).where(ReminderSettings.vehicle_id == vehicle_id)
    )
    reminder = result.scalar_one_or_none()
    if reminder is None:
        raise NotFoundError("ReminderSettings", vehicle_id)
    return reminder


async def list_settings(db: AsyncSession) -> list[ReminderSettings]:
    result = await db.execute(select(ReminderSettings).order_by(ReminderSettings.vehicle_id))
    return list(result.scalars().all())


async def upsert_settings(
    db: AsyncSession,
    data: ReminderSettingsUpsert,
    scheduler: MaintenanceScheduler,
    locks: VehicleLocks = vehicle_locks,
) -> ReminderSettings:
    """Creer ou modifier, puis re-verifier le vehicule / Create or update, then re-check the vehicle."""
    async with locks.hold(data.vehicle_id):
        vehicle = await db.get(Vehicle, data.vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", data.vehicle_id)

        result = await db.execute(
            select(ReminderSettings).where(ReminderSettings.vehicle_id == data.vehicle_id)
        )
        reminder = result.scalar_one_or_none()
        if reminder is None:
            reminder = ReminderSettings(
                vehicle_id=data.vehicle_id,
                notification_threshold_km=app_settings.DEFAULT_NOTIFICATION_THRESHOLD_KM,
                notifications_enabled=app_settings.DEFAULT_NOTIFICATIONS_ENABLED,
            )
            db.add(reminder)

        reminder.service_interval_km = data.service_interval_km
        if data.notification_threshold_km is not None:
            reminder.notification_threshold_km = data.notification_threshold_km
        if data.notifications_enabled is not None:
            reminder.notifications_enabled = data.notifications_enabled
        await db.commit()
    log.info("Reminder settings saved for vehicle %s", data.vehicle_id)

    # Re-verification apres changement de configuration / Re-check after configuration change
    await scheduler.check_vehicle(data.vehicle_id)
    return reminder


async def delete_settings(
    db: AsyncSession, vehicle_id: int, locks: VehicleLocks = vehicle_locks
) -> None:
    """Desactiver l'alerte puis supprimer / Deactivate the notification, then delete."""
    async with locks.hold(vehicle_id):
        reminder = await get_settings(db, vehicle_id)
        await NotificationEngine.deactivate(db, vehicle_id)
        await db.delete(reminder)
        await db.commit()
    log.info("Reminder settings deleted for vehicle %s", vehicle_id)


async def _build_reminder(db: AsyncSession, vehicle: Vehicle) -> Reminder:
    reminder = Reminder(
        vehicle_id=vehicle.id,
        vehicle_label=vehicle.label,
        current_km=vehicle.current_km,
        status=ReminderStatus.NOT_CONFIGURED,
        message="Service interval not configured",
    )
    result = await db.execute(
        select(ReminderSettings).where(ReminderSettings.vehicle_id == vehicle.id)
    )
    config = result.scalar_one_or_none()
    if config is None:
        return reminder

    last_visit = await MaintenanceScheduleCalculator.last_completed_visit(db, vehicle.id)
    count = await MaintenanceScheduleCalculator.completed_visit_count(db, vehicle.id)
    forecast = MaintenanceScheduleCalculator.compute(vehicle.current_km, config, last_visit, count)
    km = forecast.km_to_next_service

    reminder.service_interval_km = config.service_interval_km
    reminder.km_to_next_service = km
    reminder.completed_service_count = count
    if last_visit is not None:
        reminder.last_service_km = last_visit.km_at_service
        reminder.last_service_at = last_visit.completed_at.isoformat() if last_visit.completed_at else None

    which = "first" if forecast.is_baseline else "next"
    if km < 0:
        reminder.status = ReminderStatus.OVERDUE
        reminder.message = f"Maintenance overdue by {abs(km)} km"
    elif km <= config.notification_threshold_km:
        reminder.status = ReminderStatus.WARNING
        reminder.message = f"{km} km remaining until {which} service"
    else:
        reminder.status = ReminderStatus.OK
        reminder.message = f"{km} km remaining until {which} service"
    return reminder


async def reminder_for_vehicle(db: AsyncSession, vehicle_id: int) -> Reminder:
    vehicle = await db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)
    return await _build_reminder(db, vehicle)


async def all_reminders(db: AsyncSession) -> list[Reminder]:
    result = await db.execute(select(Vehicle).order_by(Vehicle.code))
    return [await _build_reminder(db, v) for v in result.scalars().all()]


async def reminders_requiring_attention(db: AsyncSession) -> list[Reminder]:
    return [
        r for r in await all_reminders(db)
        if r.status in (ReminderStatus.WARNING, ReminderStatus.OVERDUE)
    ]
