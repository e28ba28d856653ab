"""Services metier / Domain services."""
