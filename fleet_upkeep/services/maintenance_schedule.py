"""
Calcul de l'echeance d'entretien / Maintenance schedule calculation.
"""

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.service_visit import ServiceVisit, ServiceVisitStatus


@dataclass(frozen=True)
class MaintenanceForecast:
    """Distance restante avant entretien / Distance left before next service.

    km_to_next_service negatif = entretien en retard / negative means overdue.
    """
    km_to_next_service: int
    next_service_km: int
    completed_service_count: int
    is_baseline: bool
    last_service_km: int | None = None


class MaintenanceScheduleCalculator:
    """Calcul pur, sans effet de bord / Pure calculation, no side effects."""

    @staticmethod
    def compute(
        current_km: int,
        settings: ReminderSettings,
        last_visit: ServiceVisit | None,
        completed_count: int,
    ) -> MaintenanceForecast:
        interval = settings.service_interval_km
        current_km = current_km or 0

        if last_visit is not None:
            next_service_km = last_visit.km_at_service + interval
            return MaintenanceForecast(
                km_to_next_service=next_service_km - current_km,
                next_service_km=next_service_km,
                completed_service_count=completed_count,
                is_baseline=False,
                last_service_km=last_visit.km_at_service,
            )

        # Aucun entretien termine : reference a 0 km / No completed visit: baseline at 0 km
        return MaintenanceForecast(
            km_to_next_service=interval - current_km,
            next_service_km=interval,
            completed_service_count=completed_count,
            is_baseline=True,
        )

    @staticmethod
    async def last_completed_visit(db: AsyncSession, vehicle_id: int) -> ServiceVisit | None:
        """Dernier entretien termine / Last completed visit (completed_at, puis started_at)."""
        result = await db.execute(
            select(ServiceVisit)
            .where(
                ServiceVisit.vehicle_id == vehicle_id,
                ServiceVisit.status == ServiceVisitStatus.COMPLETED,
            )
            .order_by(ServiceVisit.completed_at.desc(), ServiceVisit.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def completed_visit_count(db: AsyncSession, vehicle_id: int) -> int:
        result = await db.execute(
            select(func.count(ServiceVisit.id)).where(
                ServiceVisit.vehicle_id == vehicle_id,
                ServiceVisit.status == ServiceVisitStatus.COMPLETED,
            )
        )
        return result.scalar_one()

    @staticmethod
    async def forecast(
        db: AsyncSession, vehicle_id: int, current_km: int, settings: ReminderSettings
    ) -> MaintenanceForecast:
        """Charger les visites puis calculer / Load visits then compute."""
        last_visit = await MaintenanceScheduleCalculator.last_completed_visit(db, vehicle_id)
        count = await MaintenanceScheduleCalculator.completed_visit_count(db, vehicle_id)
        return MaintenanceScheduleCalculator.compute(current_km, settings, last_visit, count)
