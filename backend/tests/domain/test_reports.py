"""Tests for the executive summary aggregation."""

from datetime import UTC, date, datetime, timedelta

import pytest

from fleetbuild.domain.build_tree import BuildActivityRecord, apply_item_statuses, clone_weight_model
from fleetbuild.domain.completion import COMPLETED, IN_PROGRESS
from fleetbuild.domain.reports import (
    bucketed_completions,
    build_executive_summary,
    classify_bottleneck,
    find_bottlenecks,
)

pytestmark = pytest.mark.unit

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=UTC)

ALL_DONE = {
    "Frame": {
        "Structure": {"Composite": COMPLETED, "Rails": COMPLETED, "Legs": COMPLETED},
        "Fasteners": {"Bolts": COMPLETED},
    },
    "Power": {"Harness": {"Wiring": COMPLETED}},
}


@pytest.fixture
def fleet(small_model):
    done = apply_item_statuses(clone_weight_model(small_model, "A", "G1-M"), ALL_DONE)
    started = apply_item_statuses(
        clone_weight_model(small_model, "B", "G1-C"),
        {"Frame": {"Structure": {"Composite": COMPLETED}}},
    )
    idle = clone_weight_model(small_model, "C", "G1-M")
    return [done, started, idle]


def _activity(when, status=COMPLETED, serial="B"):
    return BuildActivityRecord(
        drone_serial=serial,
        item_id="i",
        item_name="Composite",
        assembly_name="Structure",
        system_name="Frame",
        action="completed" if status == COMPLETED else "started",
        status=status,
        timestamp=when,
    )


@pytest.fixture
def activities():
    today = NOW.replace(hour=9)
    return [
        _activity(today),
        _activity(today),
        _activity(today, status=IN_PROGRESS),
        _activity(NOW - timedelta(days=2)),
        _activity(NOW - timedelta(days=20)),
    ]


class TestBuildExecutiveSummary:
    def test_overview(self, fleet, activities):
        summary = build_executive_summary(fleet, activities, "daily", NOW)

        assert summary["period"] == "daily"
        assert summary["timestamp"] == NOW
        assert summary["overview"] == {
            "total_drones": 3,
            "completed_drones": 1,
            "in_progress_drones": 1,
            "pending_drones": 1,
            "overall_completion_rate": 36.67,
        }

    def test_productivity(self, fleet, activities):
        productivity = build_executive_summary(fleet, activities, "daily", NOW)["productivity"]

        assert productivity["items_completed_today"] == 2
        assert productivity["items_completed_this_week"] == 3
        assert productivity["velocity"] == 0.43
        assert productivity["velocity_trend"] == "increasing"

    def test_bottlenecks_sorted_worst_first(self, fleet, activities):
        bottlenecks = build_executive_summary(fleet, activities, "daily", NOW)["bottlenecks"]

        assert [b["system_name"] for b in bottlenecks] == ["Power", "Frame"]
        assert bottlenecks[0]["average_completion"] == 33.33
        assert bottlenecks[1]["average_completion"] == 40.0
        assert {b["issue_type"] for b in bottlenecks} == {"slow_progress"}

    def test_milestones(self, fleet, activities):
        milestones = build_executive_summary(fleet, activities, "daily", NOW)["milestones"]

        assert [m["drone_serial"] for m in milestones] == ["A", "B"]
        assert milestones[0]["milestone"] == 100
        assert milestones[0]["next_milestone"] == 100
        assert milestones[0]["forecast_date"] is None
        assert milestones[1]["milestone"] == 0
        assert milestones[1]["next_milestone"] == 25
        # 4 remaining items at 3/7 items per day
        assert milestones[1]["forecast_date"] == date(2025, 3, 20)
        assert milestones[1]["forecast_confidence"] == "low"

    def test_team_efficiency(self, fleet, activities):
        efficiency = build_executive_summary(fleet, activities, "daily", NOW)["team_efficiency"]

        assert efficiency["total_items"] == 15
        assert efficiency["total_active_items"] == 0
        assert efficiency["completion_rate"] == 40.0
        assert efficiency["recommended_actions"] == ["Focus on completing in-progress items"]

    def test_empty_fleet(self):
        summary = build_executive_summary([], [], "weekly", NOW)

        assert summary["overview"]["total_drones"] == 0
        assert summary["overview"]["overall_completion_rate"] == 0.0
        assert summary["bottlenecks"] == []
        assert summary["milestones"] == []
        assert summary["productivity"]["velocity_trend"] == "stable"
        assert summary["team_efficiency"]["recommended_actions"] == ["Focus on completing in-progress items"]


def test_daily_buckets(activities):
    assert bucketed_completions(activities, NOW, 1, 7) == [0, 0, 0, 0, 1, 0, 2]


def test_weekly_buckets(activities):
    assert bucketed_completions(activities, NOW, 7, 4) == [1, 0, 1, 2]


@pytest.mark.parametrize(
    ("average", "issue"),
    [(10.0, "stalled"), (45.0, "slow_progress"), (70.0, "resource_constraint")],
)
def test_classify_bottleneck(average, issue):
    assert classify_bottleneck(average)[0] == issue


def test_healthy_systems_are_not_bottlenecks(small_model):
    done = apply_item_statuses(clone_weight_model(small_model, "A", "G1-M"), ALL_DONE)
    assert find_bottlenecks([done]) == []
