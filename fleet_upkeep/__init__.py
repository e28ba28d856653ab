"""Fleet Upkeep - coherence compteurs et alertes d'entretien / counter consistency and maintenance alerts."""
