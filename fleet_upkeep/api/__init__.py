"""Routes API / API routes."""

from fastapi import APIRouter

from fleet_upkeep.api import (
    counters,
    fuel,
    notifications,
    reminders,
    service_visits,
    vehicles,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
api_router.include_router(fuel.router, prefix="/fuel", tags=["fuel"])
api_router.include_router(counters.router, prefix="/counters", tags=["counters"])
api_router.include_router(service_visits.router, prefix="/service-visits", tags=["service-visits"])
api_router.include_router(reminders.router, prefix="/reminders", tags=["reminders"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
