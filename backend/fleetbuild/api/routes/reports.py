"""Report routes: executive summary and CSV exports."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from fleetbuild.api.routes.drones import get_build_service
from fleetbuild.schemas.reports import ExecutiveSummaryResponse
from fleetbuild.services.build_service import BuildService
from fleetbuild.services.report_service import ReportService

router = APIRouter()


def get_report_service(builds: BuildService = Depends(get_build_service)) -> ReportService:
    return ReportService(builds)


def _csv(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/executive", response_model=ExecutiveSummaryResponse)
async def executive_summary(
    period: Literal["daily", "weekly"] = Query("daily"),
    service: ReportService = Depends(get_report_service),
):
    return await service.executive_summary(period)


@router.get("/export/drones.csv")
async def export_drones(service: ReportService = Depends(get_report_service)):
    return _csv(await service.export_drones_csv(), "drones.csv")


@router.get("/export/items.csv")
async def export_items(service: ReportService = Depends(get_report_service)):
    return _csv(await service.export_items_csv(), "items.csv")


@router.get("/export/activities.csv")
async def export_activities(
    serial: str | None = Query(None),
    service: ReportService = Depends(get_report_service),
):
    return _csv(await service.export_activities_csv(serial), "activities.csv")
