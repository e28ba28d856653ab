"""Modele passage atelier / Service visit model."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_upkeep.database import Base


class ServiceVisitStatus(str, enum.Enum):
    """Statut entretien / Service visit status."""
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ServiceVisit(Base):
    """Passage atelier / Service visit.

    Seules les visites COMPLETED comptent pour le dernier entretien.
    Only COMPLETED visits count as the last service.
    """
    __tablename__ = "service_visits"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), nullable=False, index=True)
    km_at_service: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ServiceVisitStatus] = mapped_column(
        Enum(ServiceVisitStatus), default=ServiceVisitStatus.PLANNED, nullable=False
    )

    # Planning
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    planned_end_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    description: Mapped[str | None] = mapped_column(Text)
    provider_name: Mapped[str | None] = mapped_column(String(150))
    cost_total: Mapped[float | None] = mapped_column(Numeric(10, 2))
    created_at: Mapped[str | None] = mapped_column(String(32))  # ISO 8601

    # Relations
    vehicle: Mapped["Vehicle"] = relationship(back_populates="service_visits")

    def __repr__(self) -> str:
        return f"<ServiceVisit {self.status.value} - {self.km_at_service} km - vehicle {self.vehicle_id}>"
