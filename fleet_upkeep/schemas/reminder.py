"""Schemas rappels d'entretien / Maintenance reminder schemas."""

import enum

from pydantic import BaseModel, ConfigDict, Field


class ReminderStatus(str, enum.Enum):
    """Etat de l'echeance / Reminder status."""
    OK = "OK"
    WARNING = "WARNING"
    OVERDUE = "OVERDUE"
    NOT_CONFIGURED = "NOT_CONFIGURED"


class ReminderSettingsUpsert(BaseModel):
    vehicle_id: int
    service_interval_km: int = Field(gt=0)
    # None = valeur par defaut de la configuration / None = configuration default
    notification_threshold_km: int | None = Field(default=None, ge=0)
    notifications_enabled: bool | None = None


class ReminderSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    service_interval_km: int
    notification_threshold_km: int
    notifications_enabled: bool


class ReminderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vehicle_id: int
    vehicle_label: str
    current_km: int
    status: ReminderStatus
    message: str
    service_interval_km: int | None = None
    km_to_next_service: int | None = None
    last_service_km: int | None = None
    last_service_at: str | None = None
    completed_service_count: int = 0
