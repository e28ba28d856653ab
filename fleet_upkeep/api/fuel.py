"""Routes carburant / Fuel routes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.config import settings
from fleet_upkeep.database import get_db
from fleet_upkeep.models.fuel_entry import VehicleFuelEntry
from fleet_upkeep.rate_limit import limiter
from fleet_upkeep.schemas.fleet import FuelEntryCreate, FuelEntryRead
from fleet_upkeep.services.recorders import record_fuel_entry

router = APIRouter()


@router.get("/", response_model=list[FuelEntryRead])
async def list_fuel(vehicle_id: int | None = None, db: AsyncSession = Depends(get_db)):
    query = select(VehicleFuelEntry).order_by(VehicleFuelEntry.occurred_at.desc())
    if vehicle_id is not None:
        query = query.where(VehicleFuelEntry.vehicle_id == vehicle_id)
    result = await db.execute(query.limit(500))
    return result.scalars().all()


@router.post("/", response_model=FuelEntryRead, status_code=201)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def create_fuel(request: Request, data: FuelEntryCreate, db: AsyncSession = Depends(get_db)):
    """Enregistrer un plein valide / Record a validated fuel entry."""
    return await record_fuel_entry(db, data)
