"""Schemas gestion de flotte / Fleet management schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fleet_upkeep.models.service_visit import ServiceVisitStatus


# --- Vehicles ---

class VehicleCreate(BaseModel):
    code: str
    name: str | None = None
    license_plate: str | None = None
    brand: str | None = None
    model: str | None = None
    current_km: int = Field(default=0, ge=0)
    notes: str | None = None


class VehicleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str | None = None
    license_plate: str | None = None
    brand: str | None = None
    model: str | None = None
    current_km: int
    last_km_update: str | None = None
    notes: str | None = None


# --- Fuel ---

class FuelEntryCreate(BaseModel):
    vehicle_id: int
    occurred_at: datetime
    km_at_fill: int = Field(ge=0)
    liters: float | None = Field(default=None, gt=0)
    price_per_liter: float | None = Field(default=None, ge=0)
    total_cost: float | None = None
    station_name: str | None = None
    notes: str | None = None


class FuelEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    occurred_at: datetime
    km_at_fill: int
    liters: float | None = None
    price_per_liter: float | None = None
    total_cost: float | None = None
    station_name: str | None = None
    notes: str | None = None


# --- Service visits ---

class ServiceVisitCreate(BaseModel):
    vehicle_id: int
    km_at_service: int = Field(ge=0)
    started_at: datetime
    planned_end_at: datetime | None = None
    description: str | None = None
    provider_name: str | None = None
    cost_total: float | None = None


class ServiceVisitStatusUpdate(BaseModel):
    status: ServiceVisitStatus


class ServiceVisitRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    km_at_service: int
    status: ServiceVisitStatus
    started_at: datetime
    planned_end_at: datetime | None = None
    completed_at: datetime | None = None
    description: str | None = None
    provider_name: str | None = None
    cost_total: float | None = None
    created_at: str | None = None
