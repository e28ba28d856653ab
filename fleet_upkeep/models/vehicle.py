"""Modele Vehicule / Vehicle model.

Entite physique du parc. Le moteur ne lit et n'ecrit que le kilometrage courant.
Physical fleet entity. The engine only reads and advances the current mileage.
"""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_upkeep.database import Base


class Vehicle(Base):
    """Vehicule du parc / Fleet vehicle."""
    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # --- Identification ---
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(150))
    license_plate: Mapped[str | None] = mapped_column(String(20), unique=True)
    brand: Mapped[str | None] = mapped_column(String(50))
    model: Mapped[str | None] = mapped_column(String(50))

    # --- Kilometrage / Mileage ---
    current_km: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_km_update: Mapped[str | None] = mapped_column(String(32))  # ISO 8601

    notes: Mapped[str | None] = mapped_column(Text)

    # --- Relations (suppression en cascade / cascaded deletion) ---
    fuel_entries: Mapped[list["VehicleFuelEntry"]] = relationship(
        back_populates="vehicle", cascade="all, delete-orphan"
    )
    service_visits: Mapped[list["ServiceVisit"]] = relationship(
        back_populates="vehicle", cascade="all, delete-orphan"
    )
    reminder_settings: Mapped["ReminderSettings"] = relationship(
        back_populates="vehicle", cascade="all, delete-orphan", uselist=False
    )
    notifications: Mapped[list["MaintenanceNotification"]] = relationship(
        back_populates="vehicle", cascade="all, delete-orphan"
    )

    @property
    def label(self) -> str:
        """Libelle lisible / Human readable label."""
        parts = [p for p in (self.brand, self.model, self.license_plate) if p]
        return " ".join(parts) if parts else (self.name or self.code)

    def __repr__(self) -> str:
        return f"<Vehicle {self.code} - {self.current_km} km>"
