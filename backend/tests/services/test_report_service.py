"""Tests for ReportService over a persisted fleet."""

import csv
import io

import pytest

from fleetbuild.domain.completion import COMPLETED, IN_PROGRESS
from fleetbuild.services.report_service import ReportService

pytestmark = pytest.mark.integration


@pytest.fixture
async def fleet(build_service):
    s1 = await build_service.register_drone("S1", "G1-M")
    await build_service.register_drone("S2", "G1-C")
    items = {item.name: item.id for _, _, item in s1.iter_items()}
    await build_service.apply_status_change("S1", items["Wiring"], COMPLETED)
    await build_service.apply_status_change("S1", items["Bolts"], IN_PROGRESS)
    return build_service


async def test_executive_summary_counts_today(fleet):
    summary = await ReportService(fleet).executive_summary("daily")

    assert summary["overview"]["total_drones"] == 2
    assert summary["overview"]["in_progress_drones"] == 1
    assert summary["overview"]["pending_drones"] == 1
    assert summary["productivity"]["items_completed_today"] == 1
    assert summary["productivity"]["items_completed_this_week"] == 1
    assert summary["team_efficiency"]["total_active_items"] == 1


async def test_weekly_period(fleet):
    summary = await ReportService(fleet).executive_summary("weekly")
    assert summary["period"] == "weekly"


async def test_csv_exports(fleet):
    service = ReportService(fleet)

    drones = list(csv.reader(io.StringIO(await service.export_drones_csv())))
    items = list(csv.reader(io.StringIO(await service.export_items_csv())))
    activities = list(csv.reader(io.StringIO(await service.export_activities_csv("S1"))))

    assert [row[0] for row in drones[1:]] == ["S1", "S2"]
    assert len(items) == 1 + 10
    assert len(activities) == 1 + 2
