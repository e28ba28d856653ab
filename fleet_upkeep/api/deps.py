"""
Dependances partagees / Shared dependencies.
Injectées dans les routes via Depends().
"""

from fleet_upkeep.services.scheduler import MaintenanceScheduler, scheduler


def get_scheduler() -> MaintenanceScheduler:
    """Planificateur de l'application / Application scheduler (surchargeable en test)."""
    return scheduler
