"""Drone API routes: registration, build trees, item status changes."""

from fastapi import APIRouter, Depends, Query

from fleetbuild.core.config import get_settings
from fleetbuild.schemas.drones import (
    ActivityResponse,
    BulkStatusRequest,
    BulkStatusResponse,
    BulkStatusResult,
    DroneResponse,
    ItemStatusUpdateRequest,
    ItemStatusUpdateResponse,
    RegisterDroneRequest,
)
from fleetbuild.services.build_service import BuildService

router = APIRouter()


def get_build_service() -> BuildService:
    return BuildService()


@router.get("", response_model=list[DroneResponse])
async def list_drones(service: BuildService = Depends(get_build_service)):
    """List every drone with its build tree and latest activities."""
    settings = get_settings()
    drones = await service.list_drones()
    recent = await service.recent_activity_by_drone(settings.drone_recent_activity_limit)
    return [DroneResponse.from_tree(tree, recent.get(tree.serial, [])) for tree in drones]


@router.post("", status_code=201, response_model=DroneResponse)
async def register_drone(
    request: RegisterDroneRequest,
    service: BuildService = Depends(get_build_service),
):
    """Register a drone with every item pending.

    Raises:
        DroneAlreadyExistsError (409): serial already registered
    """
    tree = await service.register_drone(
        request.serial,
        request.model,
        start_date=request.start_date,
        estimated_completion=request.estimated_completion,
    )
    return DroneResponse.from_tree(tree)


@router.post("/bulk-status", response_model=BulkStatusResponse)
async def bulk_status(
    request: BulkStatusRequest,
    service: BuildService = Depends(get_build_service),
):
    """Apply independent item status changes; each change succeeds or fails on its own."""
    results = await service.apply_bulk((c.serial, c.item_id, c.status) for c in request.changes)
    succeeded = sum(1 for r in results if r["success"])
    return BulkStatusResponse(
        results=[BulkStatusResult(**r) for r in results],
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )


@router.get("/{serial}", response_model=DroneResponse)
async def get_drone(serial: str, service: BuildService = Depends(get_build_service)):
    settings = get_settings()
    tree = await service.get_drone(serial)
    activities = await service.list_activities(serial=serial, limit=settings.drone_recent_activity_limit)
    return DroneResponse.from_tree(tree, activities)


@router.patch("/{serial}/items", response_model=ItemStatusUpdateResponse)
async def update_item_status(
    serial: str,
    request: ItemStatusUpdateRequest,
    service: BuildService = Depends(get_build_service),
):
    """Change one item's status and return the recomputed tree.

    Raises:
        InvalidStatusError (400), DroneNotFoundError / ItemNotFoundError (404),
        DroneBusyError (409), PersistenceError (503)
    """
    result = await service.apply_status_change(serial, request.item_id, request.status)
    return ItemStatusUpdateResponse(
        serial=serial,
        item_id=request.item_id,
        old_status=result.old_status,
        new_status=result.item.status,
        changed=result.event is not None,
        overall_completion=result.drone.overall_completion,
        drone_status=result.drone.status,
        activity=ActivityResponse.from_record(result.activity),
        drone=DroneResponse.from_tree(result.drone),
    )


@router.get("/{serial}/activities", response_model=list[ActivityResponse])
async def list_drone_activities(
    serial: str,
    limit: int | None = Query(None, ge=1, le=1000),
    service: BuildService = Depends(get_build_service),
):
    limit = limit or get_settings().activity_page_size
    records = await service.list_activities(serial=serial, limit=limit)
    return [ActivityResponse.from_record(r) for r in records]
