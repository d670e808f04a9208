from fastapi import APIRouter

from fleetbuild.api.routes import drones, events, fleet, health, reports

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(drones.router, prefix="/drones", tags=["drones"])
api_router.include_router(fleet.router, tags=["fleet"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(events.router, tags=["events"])
