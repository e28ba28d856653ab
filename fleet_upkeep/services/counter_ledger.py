"""
Registre des releves compteur / Counter ledger.

Garantit que, toutes sources confondues (carburant, atelier), le kilometrage
ne diminue jamais quand le temps avance.
Enforces that, across fuel and service sources, the counter never decreases
as time moves forward.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.exceptions import ConsistencyReason, CounterConsistencyError
from fleet_upkeep.models.fuel_entry import VehicleFuelEntry
from fleet_upkeep.models.service_visit import ServiceVisit
from fleet_upkeep.models.vehicle import Vehicle

log = logging.getLogger(__name__)

LABEL_MAX_LENGTH = 50


class CounterSource(str, enum.Enum):
    """Origine du releve / Reading source."""
    FUEL = "FUEL"
    SERVICE = "SERVICE"


@dataclass(frozen=True)
class CounterEvent:
    """Releve compteur horodate / Timestamped counter reading."""
    vehicle_id: int
    counter_value: int
    occurred_at: datetime
    source: CounterSource
    label: str
    record_id: int | None = None

    def as_dict(self) -> dict:
        return {
            "counter_value": self.counter_value,
            "occurred_at": self.occurred_at.isoformat(),
            "source": self.source.value,
            "label": self.label,
            "record_id": self.record_id,
        }


def normalize_timestamp(value: datetime) -> datetime:
    """Ramener en UTC naif comme en base / Convert to naive UTC as stored."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def fuel_event(entry: VehicleFuelEntry) -> CounterEvent:
    label = f"Fuel at {entry.station_name}" if entry.station_name else "Fuel purchase"
    return CounterEvent(
        vehicle_id=entry.vehicle_id,
        counter_value=entry.km_at_fill,
        occurred_at=entry.occurred_at,
        source=CounterSource.FUEL,
        label=label,
        record_id=entry.id,
    )


def service_event(visit: ServiceVisit) -> CounterEvent:
    if visit.description:
        text = visit.description
        if len(text) > LABEL_MAX_LENGTH:
            text = text[:LABEL_MAX_LENGTH] + "..."
        label = f"Service: {text}"
    else:
        label = "Service visit"
    return CounterEvent(
        vehicle_id=visit.vehicle_id,
        counter_value=visit.km_at_service,
        occurred_at=visit.started_at,
        source=CounterSource.SERVICE,
        label=label,
        record_id=visit.id,
    )


def find_conflict(
    events: list[CounterEvent], counter_value: int, occurred_at: datetime
) -> CounterEvent | None:
    """Premier evenement qui casse la monotonie / First event breaking monotonicity.

    Plus tard mais plus bas, ou plus tot mais plus haut. Les egalites sont permises.
    Later-and-lower or earlier-and-higher. Ties are allowed.
    """
    for event in events:
        if event.occurred_at > occurred_at and event.counter_value < counter_value:
            return event
        if event.occurred_at < occurred_at and event.counter_value > counter_value:
            return event
    return None


class CounterLedger:
    """Historique compteur unifie d'un vehicule / Unified counter history of a vehicle."""

    @staticmethod
    async def events(db: AsyncSession, vehicle_id: int) -> list[CounterEvent]:
        """Tous les releves, tries dans le temps / All readings, time ordered."""
        fuel = await db.execute(
            select(VehicleFuelEntry).where(VehicleFuelEntry.vehicle_id == vehicle_id)
        )
        visits = await db.execute(
            select(ServiceVisit).where(ServiceVisit.vehicle_id == vehicle_id)
        )
        events = [fuel_event(e) for e in fuel.scalars().all()]
        events.extend(service_event(v) for v in visits.scalars().all())
        events.sort(key=lambda e: (e.occurred_at, e.counter_value))
        return events

    @staticmethod
    async def minimum_allowed(db: AsyncSession, vehicle_id: int) -> int:
        """Plancher de tout nouveau releve / Floor for any new reading."""
        events = await CounterLedger.events(db, vehicle_id)
        return max((e.counter_value for e in events), default=0)

    @staticmethod
    async def validate(
        db: AsyncSession, vehicle_id: int, counter_value: int, occurred_at: datetime
    ) -> None:
        """Lever CounterConsistencyError si le releve est incoherent / Raise on an inconsistent reading."""
        occurred_at = normalize_timestamp(occurred_at)
        events = await CounterLedger.events(db, vehicle_id)
        minimum = max((e.counter_value for e in events), default=0)

        conflict = find_conflict(events, counter_value, occurred_at)
        if conflict is not None:
            log.info(
                "Counter %s km at %s rejected for vehicle %s: conflicts with %s",
                counter_value, occurred_at, vehicle_id, conflict,
            )
            if conflict.occurred_at > occurred_at:
                message = (
                    f"Inconsistent reading: the record of {conflict.occurred_at:%Y-%m-%d %H:%M} "
                    f"has {conflict.counter_value} km, lower than {counter_value} km "
                    f"for the earlier date {occurred_at:%Y-%m-%d %H:%M}"
                )
            else:
                message = (
                    f"Counter reading ({counter_value} km) cannot be lower than the record of "
                    f"{conflict.occurred_at:%Y-%m-%d %H:%M} ({conflict.counter_value} km)"
                )
            raise CounterConsistencyError(
                ConsistencyReason.ORDERING_VIOLATION,
                message,
                minimum_allowed=minimum,
                conflicting_event=conflict,
            )

        if counter_value < minimum:
            log.info(
                "Counter %s km rejected for vehicle %s: below minimum %s km",
                counter_value, vehicle_id, minimum,
            )
            raise CounterConsistencyError(
                ConsistencyReason.BELOW_MINIMUM,
                f"Counter reading ({counter_value} km) cannot be lower than the minimum "
                f"allowed value ({minimum} km)",
                minimum_allowed=minimum,
            )

    @staticmethod
    async def record(db: AsyncSession, vehicle: Vehicle, row: VehicleFuelEntry | ServiceVisit) -> None:
        """Ajouter un releve deja valide / Append an already validated reading.

        Ecriture du maximum sur le vehicule / Write-through of the maximum onto the vehicle.
        """
        db.add(row)
        await db.flush()
        counter_value = row.km_at_fill if isinstance(row, VehicleFuelEntry) else row.km_at_service
        if counter_value > (vehicle.current_km or 0):
            vehicle.current_km = counter_value
            vehicle.last_km_update = datetime.now(timezone.utc).isoformat(timespec="seconds")
            await db.flush()
            log.info("Vehicle %s counter advanced to %s km", vehicle.id, counter_value)

    @staticmethod
    async def counter_info(db: AsyncSession, vehicle_id: int) -> dict:
        """Resume du compteur / Counter summary."""
        events = await CounterLedger.events(db, vehicle_id)
        minimum = max((e.counter_value for e in events), default=0)
        last_event = events[-1] if events else None
        return {
            "minimum_allowed": minimum,
            "last_event": last_event.as_dict() if last_event else None,
            "total_events": len(events),
            "message": f"Minimum allowed counter reading: {minimum} km",
        }

    @staticmethod
    async def check(
        db: AsyncSession, vehicle_id: int, counter_value: int, occurred_at: datetime
    ) -> dict:
        """Verification a blanc sans enregistrement / Pre-flight check without recording."""
        try:
            await CounterLedger.validate(db, vehicle_id, counter_value, occurred_at)
        except CounterConsistencyError as exc:
            return {
                "valid": False,
                "message": str(exc),
                "reason": exc.reason.value,
                "minimum_allowed": exc.minimum_allowed,
                "conflicting_event": exc.conflicting_event.as_dict() if exc.conflicting_event else None,
            }
        minimum = await CounterLedger.minimum_allowed(db, vehicle_id)
        return {
            "valid": True,
            "message": "Counter reading is valid",
            "reason": None,
            "minimum_allowed": minimum,
            "conflicting_event": None,
        }
