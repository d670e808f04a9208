"""Notification decisions for item status changes.

Pure functions: given a status change event and a policy, decide which
milestone and completion notifications to fire. Delivery lives in
fleetbuild.services.notification_dispatcher.
"""

from dataclasses import asdict, dataclass
from typing import Any

from fleetbuild.domain.build_tree import StatusChangeEvent
from fleetbuild.domain.completion import COMPLETED, COMPLETION_THRESHOLD


class NotificationType:
    """Notification type constants (also the event bus 'type' discriminator)."""

    MILESTONE_REACHED = "milestone_reached"
    ITEM_COMPLETED = "item_completed"
    SYSTEM_COMPLETED = "system_completed"
    DRONE_COMPLETED = "drone_completed"


@dataclass(frozen=True)
class NotificationPolicy:
    milestones: bool = True
    item_completions: bool = False
    system_completions: bool = False
    drone_completions: bool = True
    milestone_thresholds: tuple[float, ...] = (25, 50, 75, 100)

    @classmethod
    def from_settings(cls, settings) -> "NotificationPolicy":
        return cls(
            milestones=settings.notify_milestones,
            item_completions=settings.notify_item_completions,
            system_completions=settings.notify_system_completions,
            drone_completions=settings.notify_drone_completions,
            milestone_thresholds=tuple(sorted(settings.milestone_thresholds)),
        )


@dataclass(frozen=True)
class Notification:
    type: str
    drone_serial: str
    model: str
    overall_completion: float
    timestamp: str
    milestone: float | None = None
    system_name: str | None = None
    assembly_name: str | None = None
    item_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _effective(completion: float) -> float:
    # Rounded totals at the completion threshold count as 100%
    return 100.0 if completion >= COMPLETION_THRESHOLD else completion


def crossed_milestone(previous: float, current: float, thresholds: tuple[float, ...]) -> float | None:
    """Return the highest threshold t with previous < t <= current, or None.

    Only upward crossings count; regressions never re-fire a milestone.
    """
    prev = _effective(previous)
    curr = _effective(current)
    crossed = [t for t in thresholds if prev < t <= curr]
    return max(crossed) if crossed else None


def decide_notifications(event: StatusChangeEvent, policy: NotificationPolicy) -> list[Notification]:
    """Decide which notifications a status change triggers, in delivery order."""
    base = {
        "drone_serial": event.drone_serial,
        "model": event.model,
        "overall_completion": event.overall_completion,
        "timestamp": event.timestamp.isoformat(),
    }
    notifications: list[Notification] = []

    if event.new_status == COMPLETED:
        if policy.item_completions:
            notifications.append(
                Notification(
                    type=NotificationType.ITEM_COMPLETED,
                    system_name=event.system_name,
                    assembly_name=event.assembly_name,
                    item_name=event.item_name,
                    **base,
                )
            )
        if policy.system_completions and event.system_completion >= 100.0 - 1e-9:
            notifications.append(
                Notification(type=NotificationType.SYSTEM_COMPLETED, system_name=event.system_name, **base)
            )

    if (
        policy.drone_completions
        and event.previous_completion < COMPLETION_THRESHOLD <= event.overall_completion
    ):
        notifications.append(Notification(type=NotificationType.DRONE_COMPLETED, milestone=100.0, **base))

    if policy.milestones:
        milestone = crossed_milestone(
            event.previous_completion, event.overall_completion, policy.milestone_thresholds
        )
        if milestone is not None:
            notifications.append(
                Notification(type=NotificationType.MILESTONE_REACHED, milestone=milestone, **base)
            )

    return notifications
