"""Routes Vehicules / Vehicle API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleet_upkeep.database import get_db
from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.schemas.fleet import VehicleCreate, VehicleRead
from fleet_upkeep.services.vehicle_locks import vehicle_locks

router = APIRouter()


@router.get("/", response_model=list[VehicleRead])
async def list_vehicles(db: AsyncSession = Depends(get_db)):
    """Lister les vehicules / List vehicles."""
    result = await db.execute(select(Vehicle).order_by(Vehicle.code))
    return result.scalars().all()


@router.get("/{vehicle_id}", response_model=VehicleRead)
async def get_vehicle(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    """Voir un vehicule / Get vehicle detail."""
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle", vehicle_id)
    return vehicle


@router.post("/", response_model=VehicleRead, status_code=201)
async def create_vehicle(data: VehicleCreate, db: AsyncSession = Depends(get_db)):
    """Creer un vehicule / Create vehicle."""
    vehicle = Vehicle(**data.model_dump())
    db.add(vehicle)
    await db.flush()
    await db.refresh(vehicle)
    return vehicle


@router.delete("/{vehicle_id}", status_code=204)
async def delete_vehicle(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    """Supprimer un vehicule et son historique / Delete vehicle with its history (cascade)."""
    async with vehicle_locks.hold(vehicle_id):
        # Charger les relations pour la cascade / Load relations for the cascade
        result = await db.execute(
            select(Vehicle)
            .where(Vehicle.id == vehicle_id)
            .options(
                selectinload(Vehicle.fuel_entries),
                selectinload(Vehicle.service_visits),
                selectinload(Vehicle.reminder_settings),
                selectinload(Vehicle.notifications),
            )
        )
        vehicle = result.scalar_one_or_none()
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)
        await db.delete(vehicle)
        await db.commit()
