"""Schemas alertes d'entretien / Maintenance notification schemas."""

from pydantic import BaseModel, ConfigDict

from fleet_upkeep.models.notification import NotificationType


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    message: str
    type: NotificationType
    km_to_next_service: int | None = None
    completed_service_count: int
    created_at: str
    updated_at: str | None = None
    is_read: bool
    is_active: bool


class NotificationStats(BaseModel):
    total: int
    unread: int
    warning: int
    overdue: int
    info: int


class UnreadCount(BaseModel):
    unread: int


class CheckResult(BaseModel):
    created_count: int
