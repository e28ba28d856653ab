"""Fixtures partagees / Shared fixtures.

Chaque test a sa propre base SQLite fichier (une base memoire n'est pas
partagee entre connexions).
Each test gets its own SQLite file database (an in-memory one is not shared
across connections).
"""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import fleet_upkeep.models  # noqa: F401
from fleet_upkeep.api.deps import get_scheduler
from fleet_upkeep.database import Base, get_db
from fleet_upkeep.main import app
from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.rate_limit import limiter
from fleet_upkeep.services.scheduler import MaintenanceScheduler


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def scheduler(session_factory):
    return MaintenanceScheduler(session_factory, follow_up_delay=0)


@pytest.fixture
def make_vehicle(db):
    """Creer un vehicule, avec reglages optionnels / Create a vehicle, optionally with settings."""

    async def _make(code="VL-001", current_km=0, interval=None, threshold=500, enabled=True, **kwargs):
        vehicle = Vehicle(code=code, current_km=current_km, **kwargs)
        db.add(vehicle)
        await db.flush()
        if interval is not None:
            db.add(ReminderSettings(
                vehicle_id=vehicle.id,
                service_interval_km=interval,
                notification_threshold_km=threshold,
                notifications_enabled=enabled,
            ))
        await db.commit()
        return vehicle

    return _make


@pytest.fixture
async def client(session_factory, scheduler):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
