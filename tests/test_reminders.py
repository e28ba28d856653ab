"""Tests des reglages et echeances / Reminder settings and status tests."""

from datetime import datetime

import pytest

from fleet_upkeep.config import settings
from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.service_visit import ServiceVisit, ServiceVisitStatus
from fleet_upkeep.schemas.reminder import ReminderSettingsUpsert, ReminderStatus
from fleet_upkeep.services import reminders
from fleet_upkeep.services.notification_engine import NotificationEngine


@pytest.mark.asyncio
async def test_upsert_applies_defaults_and_checks(db, make_vehicle, scheduler):
    vehicle = await make_vehicle(current_km=9800)

    saved = await reminders.upsert_settings(
        db, ReminderSettingsUpsert(vehicle_id=vehicle.id, service_interval_km=10000), scheduler
    )
    assert saved.notification_threshold_km == settings.DEFAULT_NOTIFICATION_THRESHOLD_KM
    assert saved.notifications_enabled is settings.DEFAULT_NOTIFICATIONS_ENABLED

    active = await NotificationEngine.active_for_vehicle(db, vehicle.id)
    assert active is not None
    assert active.km_to_next_service == 200


@pytest.mark.asyncio
async def test_upsert_updates_existing(db, make_vehicle, scheduler):
    vehicle = await make_vehicle(interval=10000, threshold=300)

    saved = await reminders.upsert_settings(
        db,
        ReminderSettingsUpsert(vehicle_id=vehicle.id, service_interval_km=15000, notifications_enabled=False),
        scheduler,
    )
    assert saved.service_interval_km == 15000
    assert saved.notification_threshold_km == 300
    assert saved.notifications_enabled is False
    assert len(await reminders.list_settings(db)) == 1


@pytest.mark.asyncio
async def test_upsert_unknown_vehicle(db, scheduler):
    with pytest.raises(NotFoundError):
        await reminders.upsert_settings(
            db, ReminderSettingsUpsert(vehicle_id=42, service_interval_km=10000), scheduler
        )


@pytest.mark.asyncio
async def test_delete_deactivates_notification(db, make_vehicle, scheduler):
    vehicle = await make_vehicle(current_km=9900, interval=10000)
    await scheduler.check_vehicle(vehicle.id)

    await reminders.delete_settings(db, vehicle.id)
    assert await NotificationEngine.active_for_vehicle(db, vehicle.id) is None
    with pytest.raises(NotFoundError):
        await reminders.get_settings(db, vehicle.id)


@pytest.mark.asyncio
async def test_reminder_statuses(db, make_vehicle):
    await make_vehicle(code="A-OK", current_km=1000, interval=10000)
    await make_vehicle(code="B-WARN", current_km=9600, interval=10000)
    await make_vehicle(code="C-LATE", current_km=10100, interval=10000)
    await make_vehicle(code="D-NONE", current_km=500)

    by_code = {r.vehicle_label: r for r in await reminders.all_reminders(db)}
    assert by_code["A-OK"].status == ReminderStatus.OK
    assert by_code["B-WARN"].status == ReminderStatus.WARNING
    assert by_code["B-WARN"].message == "400 km remaining until first service"
    assert by_code["C-LATE"].status == ReminderStatus.OVERDUE
    assert by_code["D-NONE"].status == ReminderStatus.NOT_CONFIGURED

    attention = await reminders.reminders_requiring_attention(db)
    assert [r.vehicle_label for r in attention] == ["B-WARN", "C-LATE"]


@pytest.mark.asyncio
async def test_reminder_after_completed_service(db, make_vehicle):
    vehicle = await make_vehicle(current_km=52000, interval=10000)
    db.add(ServiceVisit(
        vehicle_id=vehicle.id, km_at_service=45000, status=ServiceVisitStatus.COMPLETED,
        started_at=datetime(2024, 6, 1), completed_at=datetime(2024, 6, 2),
    ))
    await db.commit()

    reminder = await reminders.reminder_for_vehicle(db, vehicle.id)
    assert reminder.km_to_next_service == 3000
    assert reminder.last_service_km == 45000
    assert reminder.completed_service_count == 1
    assert reminder.message == "3000 km remaining until next service"
