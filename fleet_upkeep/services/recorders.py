"""
Enregistrement des evenements compteur / Counter event recorders.

Carburant et passages atelier ecrivent sur le meme compteur physique : chaque
ecriture est validee par le CounterLedger sous le verrou du vehicule, puis
commitee avec la mise a jour du kilometrage et de l'alerte.
Fuel and service visits write to the same physical counter: each write is
validated by the CounterLedger under the vehicle lock, then committed together
with the mileage write-through and the notification update.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.exceptions import CounterConsistencyError, InvalidStatusTransition, NotFoundError
from fleet_upkeep.models.fuel_entry import VehicleFuelEntry
from fleet_upkeep.models.service_visit import ServiceVisit, ServiceVisitStatus
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.schemas.fleet import FuelEntryCreate, ServiceVisitCreate
from fleet_upkeep.services.counter_ledger import CounterLedger, normalize_timestamp
from fleet_upkeep.services.notification_engine import NotificationEngine
from fleet_upkeep.services.scheduler import MaintenanceScheduler, evaluate_vehicle
from fleet_upkeep.services.vehicle_locks import VehicleLocks, vehicle_locks

log = logging.getLogger(__name__)

_S = ServiceVisitStatus

# Transitions autorisees / Allowed status transitions
ALLOWED_TRANSITIONS: dict[ServiceVisitStatus, set[ServiceVisitStatus]] = {
    _S.PLANNED: {_S.IN_PROGRESS, _S.CANCELLED, _S.COMPLETED},
    _S.IN_PROGRESS: {_S.PLANNED, _S.CANCELLED, _S.COMPLETED},
    _S.CANCELLED: {_S.PLANNED, _S.IN_PROGRESS},
    _S.COMPLETED: {_S.PLANNED, _S.IN_PROGRESS},
}


async def _get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)
    return vehicle


async def record_fuel_entry(
    db: AsyncSession, data: FuelEntryCreate, locks: VehicleLocks = vehicle_locks
) -> VehicleFuelEntry:
    """Enregistrer un plein / Record a fuel purchase.

    Rejete l'ecriture si le releve casse la monotonie / Rejects the write on a monotonicity break.
    """
    occurred_at = normalize_timestamp(data.occurred_at)
    async with locks.hold(data.vehicle_id):
        vehicle = await _get_vehicle(db, data.vehicle_id)
        try:
            await CounterLedger.validate(db, vehicle.id, data.km_at_fill, occurred_at)
        except CounterConsistencyError:
            log.warning("Fuel entry rejected for vehicle %s (%s km)", vehicle.id, data.km_at_fill)
            raise

        dump = data.model_dump()
        dump["occurred_at"] = occurred_at
        if dump.get("total_cost") is None and data.liters is not None and data.price_per_liter is not None:
            dump["total_cost"] = round(data.liters * data.price_per_liter, 2)
        entry = VehicleFuelEntry(**dump)
        await CounterLedger.record(db, vehicle, entry)

        # Le kilometrage a pu avancer : re-evaluer dans la meme transaction
        # Mileage may have advanced: re-evaluate within the same transaction
        await evaluate_vehicle(db, vehicle)
        await db.commit()

    log.info("Fuel entry %s added for vehicle %s at %s km", entry.id, vehicle.id, entry.km_at_fill)
    return entry


async def create_service_visit(
    db: AsyncSession, data: ServiceVisitCreate, locks: VehicleLocks = vehicle_locks
) -> ServiceVisit:
    """Planifier un passage atelier / Create a service visit (PLANNED par defaut)."""
    started_at = normalize_timestamp(data.started_at)
    async with locks.hold(data.vehicle_id):
        vehicle = await _get_vehicle(db, data.vehicle_id)
        try:
            await CounterLedger.validate(db, vehicle.id, data.km_at_service, started_at)
        except CounterConsistencyError:
            log.warning("Service visit rejected for vehicle %s (%s km)", vehicle.id, data.km_at_service)
            raise

        dump = data.model_dump()
        dump["started_at"] = started_at
        if data.planned_end_at is not None:
            dump["planned_end_at"] = normalize_timestamp(data.planned_end_at)
        dump["status"] = ServiceVisitStatus.PLANNED
        dump["created_at"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        visit = ServiceVisit(**dump)
        await CounterLedger.record(db, vehicle, visit)
        await evaluate_vehicle(db, vehicle)
        await db.commit()

    log.info("Service visit %s added for vehicle %s with status %s", visit.id, vehicle.id, visit.status.value)
    return visit


async def change_service_visit_status(
    db: AsyncSession,
    visit_id: int,
    status: ServiceVisitStatus,
    scheduler: MaintenanceScheduler,
    locks: VehicleLocks = vehicle_locks,
) -> ServiceVisit:
    """Changer le statut d'une visite / Change a service visit status.

    Vers COMPLETED : horodatage, desactivation de l'alerte dans la meme transaction.
    Entree ou sortie de COMPLETED : re-verification mise en file apres commit.
    Into COMPLETED: timestamp and deactivate the notification in the same transaction.
    Into or out of COMPLETED: follow-up check queued after commit.
    """
    visit = await db.get(ServiceVisit, visit_id)
    if visit is None:
        raise NotFoundError("ServiceVisit", visit_id)

    async with locks.hold(visit.vehicle_id):
        await db.refresh(visit)
        old_status = visit.status
        if status == old_status:
            return visit
        if status not in ALLOWED_TRANSITIONS[old_status]:
            raise InvalidStatusTransition(old_status.value, status.value)

        visit.status = status
        if status == ServiceVisitStatus.COMPLETED:
            if visit.completed_at is None:
                visit.completed_at = datetime.now(timezone.utc).replace(tzinfo=None)
            await NotificationEngine.deactivate(db, visit.vehicle_id)
        elif old_status == ServiceVisitStatus.COMPLETED:
            visit.completed_at = None
        await db.commit()

    log.info("Service visit %s status %s -> %s", visit_id, old_status.value, status.value)

    if ServiceVisitStatus.COMPLETED in (status, old_status):
        scheduler.enqueue_follow_up(visit.vehicle_id)
    return visit
