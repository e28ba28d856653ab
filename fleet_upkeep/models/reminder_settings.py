"""Modele reglages de rappel / Reminder settings model."""

from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_upkeep.database import Base


class ReminderSettings(Base):
    """Intervalle d'entretien d'un vehicule / Per-vehicle maintenance interval.

    Au plus un reglage par vehicule / At most one row per vehicle.
    """
    __tablename__ = "reminder_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), unique=True, nullable=False)
    service_interval_km: Mapped[int] = mapped_column(Integer, nullable=False)
    notification_threshold_km: Mapped[int] = mapped_column(Integer, nullable=False)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Relations
    vehicle: Mapped["Vehicle"] = relationship(back_populates="reminder_settings")

    def __repr__(self) -> str:
        return f"<ReminderSettings vehicle {self.vehicle_id} every {self.service_interval_km} km>"
