"""
Moteur d'alertes d'entretien / Maintenance notification engine.

Etats par vehicule : Absent -> WARNING <-> OVERDUE -> Absent (desactivee).
Per-vehicle states: Absent -> WARNING <-> OVERDUE -> Absent (deactivated).
La ligne active est unique et modifiee sur place ; elle n'est jamais supprimee.
The active row is unique and updated in place; it is never deleted.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.notification import MaintenanceNotification, NotificationType
from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.services.maintenance_schedule import MaintenanceForecast
from fleet_upkeep.services.vehicle_locks import VehicleLocks, vehicle_locks

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def build_message(vehicle: Vehicle, forecast: MaintenanceForecast) -> str:
    """Texte de l'alerte / Notification text."""
    km = forecast.km_to_next_service
    if km < 0:
        return f"Maintenance overdue by {abs(km)} km for {vehicle.label}"
    if forecast.is_baseline:
        return f"{km} km remaining until first service for {vehicle.label}"
    return f"{km} km remaining until next service for {vehicle.label}"


def target_type(km_to_next_service: int) -> NotificationType:
    return NotificationType.OVERDUE if km_to_next_service < 0 else NotificationType.WARNING


class NotificationEngine:
    """Seul ecrivain de la table des alertes / Sole writer of the notification table.

    evaluate() et deactivate() supposent que l'appelant tient le verrou du vehicule
    (VehicleLocks.hold) jusqu'au commit.
    evaluate() and deactivate() expect the caller to hold the vehicle lock
    (VehicleLocks.hold) until commit.
    """

    @staticmethod
    async def active_for_vehicle(db: AsyncSession, vehicle_id: int) -> MaintenanceNotification | None:
        result = await db.execute(
            select(MaintenanceNotification).where(
                MaintenanceNotification.vehicle_id == vehicle_id,
                MaintenanceNotification.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _apply(
        notification: MaintenanceNotification,
        kind: NotificationType,
        km: int,
        message: str,
        count: int,
    ) -> bool:
        """Mise a jour sur place, seulement si un champ change / In-place update only when a field changes."""
        changed = False
        for attr, value in (
            ("type", kind),
            ("km_to_next_service", km),
            ("message", message),
            ("completed_service_count", count),
        ):
            if getattr(notification, attr) != value:
                setattr(notification, attr, value)
                changed = True
        if changed:
            notification.updated_at = _now()
        return changed

    @staticmethod
    async def evaluate(
        db: AsyncSession,
        vehicle: Vehicle,
        settings: ReminderSettings | None,
        forecast: MaintenanceForecast,
    ) -> bool:
        """Faire avancer la machine a etats / Advance the state machine.

        Retourne True uniquement a la creation (Absent -> WARNING/OVERDUE).
        Returns True only on creation (Absent -> WARNING/OVERDUE).
        """
        # Reglages absents ou desactives : rien a faire / Missing or disabled settings: no-op
        if settings is None or not settings.notifications_enabled:
            return False

        km = forecast.km_to_next_service
        # Au-dessus du seuil : une alerte existante n'est pas retiree
        # Above threshold: an existing notification is not retracted
        if km > settings.notification_threshold_km:
            return False

        kind = target_type(km)
        message = build_message(vehicle, forecast)
        count = forecast.completed_service_count

        existing = await NotificationEngine.active_for_vehicle(db, vehicle.id)
        if existing is not None:
            if NotificationEngine._apply(existing, kind, km, message, count):
                await db.flush()
                log.debug("Updated notification %s for vehicle %s (%s km)", existing.id, vehicle.id, km)
            return False

        notification = MaintenanceNotification(
            vehicle_id=vehicle.id,
            message=message,
            type=kind,
            km_to_next_service=km,
            completed_service_count=count,
            created_at=_now(),
            is_read=False,
            is_active=True,
        )
        try:
            async with db.begin_nested():
                db.add(notification)
                await db.flush()
        except IntegrityError:
            # Un autre processus a cree l'alerte : basculer en mise a jour
            # Another process created it first: fall back to an update
            existing = await NotificationEngine.active_for_vehicle(db, vehicle.id)
            if existing is None:
                raise
            NotificationEngine._apply(existing, kind, km, message, count)
            await db.flush()
            log.warning("Concurrent notification insert for vehicle %s resolved as update", vehicle.id)
            return False

        log.info("Created %s notification for vehicle %s (%s km to next service)", kind.value, vehicle.id, km)
        return True

    @staticmethod
    async def deactivate(db: AsyncSession, vehicle_id: int) -> bool:
        """Retour a l'etat Absent / Back to Absent. No-op sans alerte active."""
        notification = await NotificationEngine.active_for_vehicle(db, vehicle_id)
        if notification is None:
            return False
        notification.is_active = False
        notification.updated_at = _now()
        await db.flush()
        log.info("Deactivated notification %s for vehicle %s", notification.id, vehicle_id)
        return True

    # ─── Lecture et actions utilisateur / Read side and user actions ───

    @staticmethod
    async def active_notifications(db: AsyncSession) -> list[MaintenanceNotification]:
        result = await db.execute(
            select(MaintenanceNotification)
            .where(MaintenanceNotification.is_active.is_(True))
            .order_by(MaintenanceNotification.created_at.desc(), MaintenanceNotification.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def notifications_for_vehicle(db: AsyncSession, vehicle_id: int) -> list[MaintenanceNotification]:
        result = await db.execute(
            select(MaintenanceNotification)
            .where(MaintenanceNotification.vehicle_id == vehicle_id)
            .order_by(MaintenanceNotification.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_read(db: AsyncSession, notification_id: int) -> MaintenanceNotification:
        notification = await db.get(MaintenanceNotification, notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if not notification.is_read:
            notification.is_read = True
            await db.flush()
            log.info("Notification %s marked as read", notification_id)
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession) -> int:
        result = await db.execute(
            update(MaintenanceNotification)
            .where(
                MaintenanceNotification.is_active.is_(True),
                MaintenanceNotification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        log.info("Marked %s active notifications as read", result.rowcount)
        return result.rowcount

    @staticmethod
    async def deactivate_by_id(
        db: AsyncSession, notification_id: int, locks: VehicleLocks = vehicle_locks
    ) -> MaintenanceNotification:
        """Desactivation manuelle / Manual deactivation, serialisee par vehicule."""
        notification = await db.get(MaintenanceNotification, notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        async with locks.hold(notification.vehicle_id):
            await db.refresh(notification)
            if notification.is_active:
                notification.is_active = False
                notification.updated_at = _now()
                log.info("Notification %s deactivated", notification_id)
            await db.commit()
        return notification

    @staticmethod
    async def unread_count(db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count(MaintenanceNotification.id)).where(
                MaintenanceNotification.is_active.is_(True),
                MaintenanceNotification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    @staticmethod
    async def stats(db: AsyncSession) -> dict:
        """Statistiques des alertes actives / Active notification statistics."""
        active = await NotificationEngine.active_notifications(db)
        return {
            "total": len(active),
            "unread": sum(1 for n in active if not n.is_read),
            "warning": sum(1 for n in active if n.type == NotificationType.WARNING),
            "overdue": sum(1 for n in active if n.type == NotificationType.OVERDUE),
            "info": sum(1 for n in active if n.type == NotificationType.INFO),
        }
