"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que create_all les détecte.
Import all models here so create_all can detect them.
"""

from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.models.fuel_entry import VehicleFuelEntry
from fleet_upkeep.models.service_visit import ServiceVisit, ServiceVisitStatus
from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.notification import MaintenanceNotification, NotificationType

__all__ = [
    "Vehicle",
    "VehicleFuelEntry",
    "ServiceVisit",
    "ServiceVisitStatus",
    "ReminderSettings",
    "MaintenanceNotification",
    "NotificationType",
]
