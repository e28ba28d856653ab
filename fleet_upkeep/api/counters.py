"""Routes compteur / Counter routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.database import get_db
from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.schemas.counter import (
    CounterInfoRead,
    CounterValidationRequest,
    CounterValidationResult,
    MinimumCounterRead,
)
from fleet_upkeep.services.counter_ledger import CounterLedger

router = APIRouter()


async def _require_vehicle(db: AsyncSession, vehicle_id: int) -> None:
    if await db.get(Vehicle, vehicle_id) is None:
        raise NotFoundError("Vehicle", vehicle_id)


@router.get("/{vehicle_id}/minimum", response_model=MinimumCounterRead)
async def minimum_counter(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    """Releve minimum autorise / Minimum allowed counter."""
    await _require_vehicle(db, vehicle_id)
    minimum = await CounterLedger.minimum_allowed(db, vehicle_id)
    return {"vehicle_id": vehicle_id, "minimum_allowed": minimum}


@router.get("/{vehicle_id}/info", response_model=CounterInfoRead)
async def counter_info(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    await _require_vehicle(db, vehicle_id)
    return await CounterLedger.counter_info(db, vehicle_id)


@router.post("/validate", response_model=CounterValidationResult)
async def validate_counter(data: CounterValidationRequest, db: AsyncSession = Depends(get_db)):
    """Verification a blanc / Pre-flight check, rien n'est enregistre."""
    await _require_vehicle(db, data.vehicle_id)
    return await CounterLedger.check(db, data.vehicle_id, data.counter_value, data.occurred_at)
