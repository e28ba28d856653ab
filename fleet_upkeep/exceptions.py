"""
Erreurs metier / Domain errors.
Levees par les services, converties en reponses HTTP dans main.py.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleet_upkeep.services.counter_ledger import CounterEvent


class FleetUpkeepError(Exception):
    """Erreur de base / Base error."""


class NotFoundError(FleetUpkeepError):
    """Entite introuvable / Referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConsistencyReason(str, enum.Enum):
    """Motif de rejet d'un releve / Counter rejection reason."""
    BELOW_MINIMUM = "BELOW_MINIMUM"
    ORDERING_VIOLATION = "ORDERING_VIOLATION"


class CounterConsistencyError(FleetUpkeepError):
    """Releve compteur incoherent / Counter reading breaks monotonicity.

    Porte le minimum autorise ou l'evenement en conflit pour correction.
    Carries the minimum allowed value or the conflicting event for remediation.
    """

    def __init__(
        self,
        reason: ConsistencyReason,
        message: str,
        minimum_allowed: int,
        conflicting_event: CounterEvent | None = None,
    ):
        self.reason = reason
        self.minimum_allowed = minimum_allowed
        self.conflicting_event = conflicting_event
        super().__init__(message)


class InvalidStatusTransition(FleetUpkeepError):
    """Transition de statut interdite / Forbidden service visit status change."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move service visit from {current} to {target}")
