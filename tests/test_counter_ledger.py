"""Tests du registre compteur / Counter ledger tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fleet_upkeep.exceptions import ConsistencyReason, CounterConsistencyError
from fleet_upkeep.models.fuel_entry import VehicleFuelEntry
from fleet_upkeep.models.service_visit import ServiceVisit
from fleet_upkeep.schemas.fleet import FuelEntryCreate, ServiceVisitCreate
from fleet_upkeep.services.counter_ledger import (
    CounterEvent,
    CounterLedger,
    CounterSource,
    find_conflict,
    normalize_timestamp,
    service_event,
)
from fleet_upkeep.services.recorders import create_service_visit, record_fuel_entry


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2025, 1, day, hour, 0)


def event(value: int, day: int) -> CounterEvent:
    return CounterEvent(1, value, at(day), CounterSource.FUEL, "Fuel purchase")


# ─── Fonctions pures / Pure helpers ───

def test_find_conflict_later_and_lower():
    events = [event(1000, 10)]
    conflict = find_conflict(events, 1200, at(5))
    assert conflict is events[0]


def test_find_conflict_earlier_and_higher():
    events = [event(1000, 5)]
    assert find_conflict(events, 500, at(10)) is events[0]


def test_find_conflict_ties_allowed():
    events = [event(1000, 5)]
    # Meme valeur plus tard, ou meme instant / Same value later, or same instant
    assert find_conflict(events, 1000, at(10)) is None
    assert find_conflict(events, 1200, at(5)) is None


def test_normalize_timestamp_to_naive_utc():
    aware = datetime(2025, 1, 5, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert normalize_timestamp(aware) == datetime(2025, 1, 5, 12, 0)
    assert normalize_timestamp(at(5)) == at(5)


def test_service_event_label_truncated():
    visit = ServiceVisit(id=3, vehicle_id=1, km_at_service=100, started_at=at(1), description="x" * 80)
    ev = service_event(visit)
    assert ev.source == CounterSource.SERVICE
    assert ev.label == "Service: " + "x" * 50 + "..."


# ─── Registre / Ledger ───

@pytest.mark.asyncio
async def test_minimum_allowed_without_events(db, make_vehicle):
    vehicle = await make_vehicle(current_km=0)
    assert await CounterLedger.minimum_allowed(db, vehicle.id) == 0


@pytest.mark.asyncio
async def test_minimum_allowed_spans_both_sources(db, make_vehicle):
    vehicle = await make_vehicle()
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(2), km_at_fill=800))
    await create_service_visit(
        db, ServiceVisitCreate(vehicle_id=vehicle.id, km_at_service=1500, started_at=at(4))
    )
    assert await CounterLedger.minimum_allowed(db, vehicle.id) == 1500

    events = await CounterLedger.events(db, vehicle.id)
    assert [e.source for e in events] == [CounterSource.FUEL, CounterSource.SERVICE]


@pytest.mark.asyncio
async def test_ordering_violation_carries_conflicting_event(db, make_vehicle):
    vehicle = await make_vehicle()
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1000))

    with pytest.raises(CounterConsistencyError) as exc_info:
        await CounterLedger.validate(db, vehicle.id, 500, at(10))
    err = exc_info.value
    assert err.reason == ConsistencyReason.ORDERING_VIOLATION
    assert err.minimum_allowed == 1000
    assert err.conflicting_event.counter_value == 1000


@pytest.mark.asyncio
async def test_back_dated_reading_below_floor(db, make_vehicle):
    vehicle = await make_vehicle()
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1000))

    with pytest.raises(CounterConsistencyError) as exc_info:
        await CounterLedger.validate(db, vehicle.id, 500, at(1))
    assert exc_info.value.reason == ConsistencyReason.BELOW_MINIMUM
    assert exc_info.value.conflicting_event is None


@pytest.mark.asyncio
async def test_negative_reading_rejected_on_empty_history(db, make_vehicle):
    vehicle = await make_vehicle()
    with pytest.raises(CounterConsistencyError) as exc_info:
        await CounterLedger.validate(db, vehicle.id, -1, at(1))
    assert exc_info.value.reason == ConsistencyReason.BELOW_MINIMUM


@pytest.mark.asyncio
async def test_forward_dated_reading_lower_than_later_service(db, make_vehicle):
    vehicle = await make_vehicle()
    await create_service_visit(
        db, ServiceVisitCreate(vehicle_id=vehicle.id, km_at_service=1000, started_at=at(10))
    )
    with pytest.raises(CounterConsistencyError) as exc_info:
        await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1200))
    assert exc_info.value.reason == ConsistencyReason.ORDERING_VIOLATION
    assert exc_info.value.conflicting_event.source == CounterSource.SERVICE


@pytest.mark.asyncio
async def test_rejected_write_is_not_recorded(db, make_vehicle):
    vehicle = await make_vehicle()
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1000))
    with pytest.raises(CounterConsistencyError):
        await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(10), km_at_fill=900))

    events = await CounterLedger.events(db, vehicle.id)
    assert len(events) == 1
    await db.refresh(vehicle)
    assert vehicle.current_km == 1000


@pytest.mark.asyncio
async def test_write_through_advances_vehicle_counter(db, make_vehicle):
    vehicle = await make_vehicle(current_km=1000)
    entry = await record_fuel_entry(
        db,
        FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(3), km_at_fill=1200, liters=40, price_per_liter=1.5),
    )
    assert isinstance(entry, VehicleFuelEntry)
    assert float(entry.total_cost) == 60.0

    await db.refresh(vehicle)
    assert vehicle.current_km == 1200
    assert vehicle.last_km_update is not None


@pytest.mark.asyncio
async def test_equal_reading_accepted(db, make_vehicle):
    vehicle = await make_vehicle()
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1000))
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(6), km_at_fill=1000))
    assert await CounterLedger.minimum_allowed(db, vehicle.id) == 1000


@pytest.mark.asyncio
async def test_check_reports_without_recording(db, make_vehicle):
    vehicle = await make_vehicle()
    await record_fuel_entry(db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1000))

    ok = await CounterLedger.check(db, vehicle.id, 1100, at(6))
    assert ok["valid"] is True
    assert ok["minimum_allowed"] == 1000

    ko = await CounterLedger.check(db, vehicle.id, 900, at(6))
    assert ko["valid"] is False
    assert ko["reason"] == "ORDERING_VIOLATION"
    assert ko["conflicting_event"]["counter_value"] == 1000
    assert len(await CounterLedger.events(db, vehicle.id)) == 1


@pytest.mark.asyncio
async def test_counter_info(db, make_vehicle):
    vehicle = await make_vehicle()
    empty = await CounterLedger.counter_info(db, vehicle.id)
    assert empty["total_events"] == 0
    assert empty["last_event"] is None

    await record_fuel_entry(
        db, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(5), km_at_fill=1000, station_name="Total")
    )
    info = await CounterLedger.counter_info(db, vehicle.id)
    assert info["minimum_allowed"] == 1000
    assert info["last_event"]["label"] == "Fuel at Total"
    assert info["message"] == "Minimum allowed counter reading: 1000 km"


@pytest.mark.asyncio
async def test_concurrent_writers_are_linearized(db, make_vehicle, session_factory):
    vehicle = await make_vehicle()

    async def _record(km: int, day: int) -> str:
        async with session_factory() as session:
            try:
                await record_fuel_entry(
                    session, FuelEntryCreate(vehicle_id=vehicle.id, occurred_at=at(day), km_at_fill=km)
                )
            except CounterConsistencyError as exc:
                return exc.reason.value
            return "ok"

    outcomes = await asyncio.gather(_record(1000, 10), _record(1200, 5))
    assert sorted(outcomes) == ["ORDERING_VIOLATION", "ok"]
    assert len(await CounterLedger.events(db, vehicle.id)) == 1
