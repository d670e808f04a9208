"""Tests for milestone and completion notification decisions."""

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from fleetbuild.domain.build_tree import StatusChangeEvent
from fleetbuild.domain.completion import COMPLETED, IN_PROGRESS, PENDING
from fleetbuild.domain.notifications import (
    NotificationPolicy,
    NotificationType,
    crossed_milestone,
    decide_notifications,
)

pytestmark = pytest.mark.unit

THRESHOLDS = (25, 50, 75, 100)


def _event(previous, overall, new_status=COMPLETED, old_status=PENDING, system_completion=40.0):
    return StatusChangeEvent(
        drone_serial="S1",
        model="G1-M",
        item_id="item-1",
        item_name="Busbar",
        system_name="Power",
        assembly_name="Power Distribution",
        old_status=old_status,
        new_status=new_status,
        overall_completion=overall,
        previous_completion=previous,
        system_completion=system_completion,
        timestamp=datetime(2025, 3, 1, tzinfo=UTC),
    )


class TestCrossedMilestone:
    def test_no_crossing(self):
        assert crossed_milestone(10.0, 20.0, THRESHOLDS) is None

    def test_single_crossing(self):
        assert crossed_milestone(20.0, 30.0, THRESHOLDS) == 25

    def test_landing_exactly_on_threshold(self):
        assert crossed_milestone(49.0, 50.0, THRESHOLDS) == 50

    def test_starting_on_threshold_does_not_refire(self):
        assert crossed_milestone(50.0, 60.0, THRESHOLDS) is None

    def test_multiple_crossings_report_highest(self):
        assert crossed_milestone(10.0, 80.0, THRESHOLDS) == 75

    def test_regression_never_fires(self):
        assert crossed_milestone(80.0, 20.0, THRESHOLDS) is None

    def test_completion_threshold_counts_as_100(self):
        assert crossed_milestone(90.0, 99.9, THRESHOLDS) == 100

    def test_re_crossing_after_regression(self):
        assert crossed_milestone(24.0, 26.0, THRESHOLDS) == 25


class TestDecideNotifications:
    def test_default_policy_milestone_only(self):
        notifications = decide_notifications(_event(20.0, 30.0), NotificationPolicy())

        assert [n.type for n in notifications] == [NotificationType.MILESTONE_REACHED]
        assert notifications[0].milestone == 25
        assert notifications[0].drone_serial == "S1"
        assert notifications[0].timestamp == "2025-03-01T00:00:00+00:00"

    def test_milestones_disabled(self):
        policy = NotificationPolicy(milestones=False)
        assert decide_notifications(_event(20.0, 30.0), policy) == []

    def test_item_completion(self):
        policy = NotificationPolicy(item_completions=True, milestones=False)
        notifications = decide_notifications(_event(10.0, 12.0), policy)

        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.ITEM_COMPLETED
        assert notifications[0].item_name == "Busbar"
        assert notifications[0].assembly_name == "Power Distribution"

    def test_item_completion_ignores_in_progress(self):
        policy = NotificationPolicy(item_completions=True, milestones=False)
        assert decide_notifications(_event(10.0, 12.0, new_status=IN_PROGRESS), policy) == []

    def test_system_completion(self):
        policy = NotificationPolicy(system_completions=True, milestones=False)

        partial = decide_notifications(_event(10.0, 12.0, system_completion=80.0), policy)
        full = decide_notifications(_event(10.0, 12.0, system_completion=100.0), policy)

        assert partial == []
        assert [n.type for n in full] == [NotificationType.SYSTEM_COMPLETED]
        assert full[0].system_name == "Power"

    def test_drone_completion_on_crossing(self):
        notifications = decide_notifications(_event(95.0, 100.0), NotificationPolicy())

        assert [n.type for n in notifications] == [
            NotificationType.DRONE_COMPLETED,
            NotificationType.MILESTONE_REACHED,
        ]
        assert notifications[1].milestone == 100

    def test_drone_completion_not_repeated(self):
        policy = NotificationPolicy(milestones=False)
        assert decide_notifications(_event(100.0, 100.0), policy) == []

    def test_delivery_order(self):
        policy = NotificationPolicy(item_completions=True, system_completions=True)
        notifications = decide_notifications(_event(97.0, 100.0, system_completion=100.0), policy)

        assert [n.type for n in notifications] == [
            NotificationType.ITEM_COMPLETED,
            NotificationType.SYSTEM_COMPLETED,
            NotificationType.DRONE_COMPLETED,
            NotificationType.MILESTONE_REACHED,
        ]


def test_policy_from_settings_sorts_thresholds():
    settings = SimpleNamespace(
        notify_milestones=True,
        notify_item_completions=False,
        notify_system_completions=True,
        notify_drone_completions=True,
        milestone_thresholds=[75, 25, 50],
    )
    policy = NotificationPolicy.from_settings(settings)

    assert policy.milestone_thresholds == (25, 50, 75)
    assert policy.system_completions is True
