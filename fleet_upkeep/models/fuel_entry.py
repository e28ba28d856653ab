"""Modele suivi carburant / Fuel tracking model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_upkeep.database import Base


class VehicleFuelEntry(Base):
    """Entree carburant / Fuel entry.

    Jamais modifiee apres creation : c'est un evenement compteur.
    Never mutated after creation: it is a counter event.
    """
    __tablename__ = "vehicle_fuel_entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), nullable=False, index=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    km_at_fill: Mapped[int] = mapped_column(Integer, nullable=False)
    liters: Mapped[float | None] = mapped_column(Numeric(8, 2))
    price_per_liter: Mapped[float | None] = mapped_column(Numeric(6, 4))
    total_cost: Mapped[float | None] = mapped_column(Numeric(10, 2))
    station_name: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)

    # Relations
    vehicle: Mapped["Vehicle"] = relationship(back_populates="fuel_entries")

    def __repr__(self) -> str:
        return f"<FuelEntry {self.occurred_at:%Y-%m-%d} - {self.km_at_fill} km - vehicle {self.vehicle_id}>"
