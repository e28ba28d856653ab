"""Modele alerte d'entretien / Maintenance notification model."""

import enum

from sqlalchemy import Boolean, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_upkeep.database import Base


class NotificationType(str, enum.Enum):
    """Type d'alerte / Notification type."""
    WARNING = "WARNING"
    OVERDUE = "OVERDUE"
    INFO = "INFO"


class MaintenanceNotification(Base):
    """Alerte d'entretien / Maintenance notification.

    Une seule alerte active par vehicule, modifiee sur place tant que la condition dure.
    Single active row per vehicle, updated in place while the condition persists.
    """
    __tablename__ = "maintenance_notifications"
    __table_args__ = (
        # Singleton actif garanti en base / Active singleton enforced by storage
        Index(
            "uq_maintenance_notifications_active_vehicle",
            "vehicle_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    type: Mapped[NotificationType] = mapped_column(Enum(NotificationType), nullable=False)
    km_to_next_service: Mapped[int | None] = mapped_column(Integer)
    completed_service_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)  # ISO 8601
    updated_at: Mapped[str | None] = mapped_column(String(32))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relations
    vehicle: Mapped["Vehicle"] = relationship(back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification {self.type.value} - vehicle {self.vehicle_id} - active={self.is_active}>"
