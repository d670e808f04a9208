"""Fleet-wide read routes: recent activity and the loaded weight model."""

from fastapi import APIRouter, Depends, Query

from fleetbuild.api.routes.drones import get_build_service
from fleetbuild.core.config import get_settings
from fleetbuild.schemas.drones import ActivityResponse, WeightModelResponse
from fleetbuild.services.build_service import BuildService, get_weight_model

router = APIRouter()


@router.get("/activities", response_model=list[ActivityResponse])
async def list_activities(
    limit: int | None = Query(None, ge=1, le=1000),
    service: BuildService = Depends(get_build_service),
):
    """Most recent build activity across the fleet, newest first."""
    limit = limit or get_settings().activity_page_size
    records = await service.list_activities(limit=limit)
    return [ActivityResponse.from_record(r) for r in records]


@router.get("/weight-model", response_model=WeightModelResponse)
async def weight_model():
    model = get_weight_model()
    return WeightModelResponse(**model.to_dict(), item_count=model.item_count())
