"""Tests du moteur d'alertes / Notification engine tests."""

import pytest
from sqlalchemy import select

from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.notification import MaintenanceNotification, NotificationType
from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.services.maintenance_schedule import MaintenanceForecast
from fleet_upkeep.services.notification_engine import NotificationEngine, build_message, target_type
from fleet_upkeep.services.scheduler import evaluate_vehicle


def forecast(km: int, baseline: bool = False, count: int = 1) -> MaintenanceForecast:
    return MaintenanceForecast(
        km_to_next_service=km,
        next_service_km=10000,
        completed_service_count=count,
        is_baseline=baseline,
    )


async def _reminder(db, vehicle) -> ReminderSettings:
    result = await db.execute(select(ReminderSettings).where(ReminderSettings.vehicle_id == vehicle.id))
    return result.scalar_one()


def test_target_type():
    assert target_type(0) == NotificationType.WARNING
    assert target_type(-1) == NotificationType.OVERDUE


def test_messages():
    vehicle = Vehicle(code="VL-9", brand="Renault", model="Master", license_plate="AB-123-CD")
    assert build_message(vehicle, forecast(300)) == "300 km remaining until next service for Renault Master AB-123-CD"
    assert build_message(vehicle, forecast(300, baseline=True)).startswith("300 km remaining until first service")
    assert build_message(vehicle, forecast(-120)) == "Maintenance overdue by 120 km for Renault Master AB-123-CD"


@pytest.mark.asyncio
async def test_threshold_is_inclusive(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000, threshold=500)
    settings = await _reminder(db, vehicle)

    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(501)) is False
    assert await NotificationEngine.active_for_vehicle(db, vehicle.id) is None

    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(500)) is True
    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert active.type == NotificationType.WARNING
    assert active.km_to_next_service == 500


@pytest.mark.asyncio
async def test_overdue_created_directly(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000)
    settings = await _reminder(db, vehicle)

    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(-1)) is True
    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert active.type == NotificationType.OVERDUE


@pytest.mark.asyncio
async def test_evaluate_is_idempotent(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000)
    settings = await _reminder(db, vehicle)

    await NotificationEngine.evaluate(db, vehicle, settings, forecast(300))
    await db.commit()
    first = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    stamp = first.updated_at

    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(300)) is False
    await db.commit()
    again = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert again.id == first.id
    assert again.updated_at == stamp


@pytest.mark.asyncio
async def test_active_singleton_updated_in_place(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000)
    settings = await _reminder(db, vehicle)

    await NotificationEngine.evaluate(db, vehicle, settings, forecast(300))
    await NotificationEngine.evaluate(db, vehicle, settings, forecast(100))
    await NotificationEngine.evaluate(db, vehicle, settings, forecast(-50))
    await db.commit()

    rows = await NotificationEngine.notifications_for_vehicle(db, vehicle.id)
    assert len(rows) == 1
    assert rows[0].type == NotificationType.OVERDUE
    assert rows[0].km_to_next_service == -50
    assert rows[0].updated_at is not None


@pytest.mark.asyncio
async def test_not_retracted_above_threshold(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000)
    settings = await _reminder(db, vehicle)

    await NotificationEngine.evaluate(db, vehicle, settings, forecast(200))
    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(5000)) is False

    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert active is not None
    assert active.km_to_next_service == 200


@pytest.mark.asyncio
async def test_disabled_settings_noop(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000, enabled=False)
    settings = await _reminder(db, vehicle)

    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(-500)) is False
    assert await NotificationEngine.evaluate(db, vehicle, None, forecast(-500)) is False
    assert await NotificationEngine.active_for_vehicle(db, vehicle.id) is None


@pytest.mark.asyncio
async def test_disabling_settings_leaves_active_notification(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000)
    settings = await _reminder(db, vehicle)
    await NotificationEngine.evaluate(db, vehicle, settings, forecast(300))
    await db.commit()

    settings.notifications_enabled = False
    await db.commit()
    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(-800)) is False
    await db.commit()

    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert active is not None
    assert active.type == NotificationType.WARNING
    assert active.km_to_next_service == 300
    assert active.updated_at is None

    # Meme chemin que le balayage / Same path as the sweep
    vehicle.current_km = 10800
    assert await evaluate_vehicle(db, vehicle) is False
    await db.refresh(active)
    assert active.is_active is True
    assert active.km_to_next_service == 300


@pytest.mark.asyncio
async def test_deactivate_then_recreate(db, make_vehicle):
    vehicle = await make_vehicle(interval=10000)
    settings = await _reminder(db, vehicle)

    await NotificationEngine.evaluate(db, vehicle, settings, forecast(100))
    assert await NotificationEngine.deactivate(db, vehicle.id) is True
    assert await NotificationEngine.deactivate(db, vehicle.id) is False

    assert await NotificationEngine.evaluate(db, vehicle, settings, forecast(50)) is True
    await db.commit()
    rows = await NotificationEngine.notifications_for_vehicle(db, vehicle.id)
    assert [r.is_active for r in rows] == [True, False]


@pytest.mark.asyncio
async def test_evaluate_vehicle_uses_current_km(db, make_vehicle):
    vehicle = await make_vehicle(current_km=9600, interval=10000, threshold=500)
    assert await evaluate_vehicle(db, vehicle) is True
    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert active.km_to_next_service == 400
    assert "first service" in active.message


@pytest.mark.asyncio
async def test_read_side(db, make_vehicle):
    a = await make_vehicle(code="VL-A", current_km=9900, interval=10000)
    b = await make_vehicle(code="VL-B", current_km=10200, interval=10000)
    await evaluate_vehicle(db, a)
    await evaluate_vehicle(db, b)
    await db.commit()

    assert await NotificationEngine.unread_count(db) == 2
    stats = await NotificationEngine.stats(db)
    assert stats == {"total": 2, "unread": 2, "warning": 1, "overdue": 1, "info": 0}

    first = (await NotificationEngine.active_notifications(db))[0]
    read = await NotificationEngine.mark_read(db, first.id)
    assert read.is_read is True
    assert await NotificationEngine.unread_count(db) == 1

    assert await NotificationEngine.mark_all_read(db) == 1
    await db.commit()
    assert await NotificationEngine.unread_count(db) == 0


@pytest.mark.asyncio
async def test_mark_read_unknown(db):
    with pytest.raises(NotFoundError):
        await NotificationEngine.mark_read(db, 999)


@pytest.mark.asyncio
async def test_deactivate_by_id(db, make_vehicle):
    vehicle = await make_vehicle(current_km=9900, interval=10000)
    await evaluate_vehicle(db, vehicle)
    await db.commit()
    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)

    result = await NotificationEngine.deactivate_by_id(db, active.id)
    assert result.is_active is False
    assert isinstance(result, MaintenanceNotification)
    assert await NotificationEngine.active_for_vehicle(db, vehicle.id) is None
