"""Executive summary over the whole fleet.

Pure functions: callers pass build trees, activity records and the current
time; nothing here touches the database.
"""

from collections import defaultdict
from datetime import datetime, timedelta

from fleetbuild.domain.analytics import calculate_trend, calculate_velocity, forecast_completion
from fleetbuild.domain.build_tree import BuildActivityRecord, DroneTree
from fleetbuild.domain.completion import COMPLETED, IN_PROGRESS, PENDING

MILESTONE_STEP = 25
BOTTLENECK_CEILING = 80.0
MAX_BOTTLENECKS = 3
MAX_MILESTONES = 5

# period -> (bucket size in days, bucket count) for the velocity trend
PERIOD_BUCKETS: dict[str, tuple[int, int]] = {
    "daily": (1, 7),
    "weekly": (7, 4),
}


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def completion_counts(activities: list[BuildActivityRecord], since: datetime) -> int:
    return sum(1 for a in activities if a.status == COMPLETED and a.timestamp >= since)


def bucketed_completions(
    activities: list[BuildActivityRecord],
    now: datetime,
    bucket_days: int,
    buckets: int,
) -> list[int]:
    """Completed-item counts per bucket, oldest first; the last bucket ends today."""
    today = _start_of_day(now)
    first_start = today - timedelta(days=bucket_days * (buckets - 1))
    counts = [0] * buckets
    for activity in activities:
        if activity.status != COMPLETED or activity.timestamp < first_start:
            continue
        index = (activity.timestamp - first_start).days // bucket_days
        if 0 <= index < buckets:
            counts[index] += 1
    return counts


def classify_bottleneck(average_completion: float) -> tuple[str, str]:
    """Return (issue_type, recommendation) for a system's mean completion."""
    if average_completion < 30:
        return "stalled", "Review assembly procedures and identify blockers"
    if average_completion < 60:
        return "slow_progress", "Consider additional training or resources"
    return "resource_constraint", "System performing well, monitor for optimization opportunities"


def find_bottlenecks(drones: list[DroneTree]) -> list[dict]:
    totals: dict[str, list[float]] = defaultdict(list)
    for drone in drones:
        for system in drone.systems:
            totals[system.name].append(system.completion_percentage)

    bottlenecks = []
    for system_name, percentages in totals.items():
        average = round(sum(percentages) / len(percentages), 2)
        if average >= BOTTLENECK_CEILING:
            continue
        issue_type, recommendation = classify_bottleneck(average)
        bottlenecks.append({
            "system_name": system_name,
            "average_completion": average,
            "issue_type": issue_type,
            "recommendation": recommendation,
        })

    bottlenecks.sort(key=lambda b: b["average_completion"])
    return bottlenecks[:MAX_BOTTLENECKS]


def find_milestones(drones: list[DroneTree], activities: list[BuildActivityRecord], now: datetime) -> list[dict]:
    week_ago = _start_of_day(now) - timedelta(days=7)
    completed_this_week: dict[str, int] = defaultdict(int)
    for activity in activities:
        if activity.status == COMPLETED and activity.timestamp >= week_ago:
            completed_this_week[activity.drone_serial] += 1

    milestones = []
    for drone in drones:
        if drone.overall_completion <= 0:
            continue
        current = int(drone.overall_completion // MILESTONE_STEP) * MILESTONE_STEP
        remaining = sum(1 for _, _, item in drone.iter_items() if item.status != COMPLETED)
        forecast = forecast_completion(
            drone.overall_completion,
            completed_this_week[drone.serial] / 7,
            remaining,
            now.date(),
        )
        milestones.append({
            "drone_serial": drone.serial,
            "model": drone.model,
            "milestone": current,
            "achieved_at": drone.updated_at,
            "next_milestone": min(current + MILESTONE_STEP, 100),
            "estimated_completion": drone.estimated_completion,
            "forecast_date": forecast.estimated_date,
            "forecast_confidence": forecast.confidence,
        })

    milestones.sort(key=lambda m: m["milestone"], reverse=True)
    return milestones[:MAX_MILESTONES]


def team_efficiency(drones: list[DroneTree], bottleneck_count: int) -> dict:
    total_items = 0
    completed_items = 0
    active_items = 0
    for drone in drones:
        counts = drone.item_counts()
        total_items += sum(counts.values())
        completed_items += counts[COMPLETED]
        active_items += counts[IN_PROGRESS]

    completion_rate = round(completed_items / total_items * 100, 2) if total_items else 0.0

    actions = []
    if completion_rate < 50:
        actions.append("Focus on completing in-progress items")
    if bottleneck_count > 2:
        actions.append("Address system bottlenecks identified")
    if active_items > total_items * 0.3:
        actions.append("Consider reducing work-in-progress")
    if not actions:
        actions.append("Maintain current pace and quality standards")

    return {
        "total_items": total_items,
        "total_active_items": active_items,
        "completion_rate": completion_rate,
        "recommended_actions": actions,
    }


def build_executive_summary(
    drones: list[DroneTree],
    activities: list[BuildActivityRecord],
    period: str,
    now: datetime,
) -> dict:
    """Aggregate fleet overview, productivity, bottlenecks, milestones and efficiency.

    Args:
        drones: Current build trees
        activities: Activity records (at least the trend window)
        period: "daily" or "weekly"; selects the velocity trend buckets
        now: Current time, timezone-aware

    Returns:
        Dict matching ExecutiveSummaryResponse
    """
    bucket_days, bucket_count = PERIOD_BUCKETS.get(period, PERIOD_BUCKETS["daily"])

    total = len(drones)
    overview = {
        "total_drones": total,
        "completed_drones": sum(1 for d in drones if d.status == COMPLETED),
        "in_progress_drones": sum(1 for d in drones if d.status == IN_PROGRESS),
        "pending_drones": sum(1 for d in drones if d.status == PENDING),
        "overall_completion_rate": round(sum(d.overall_completion for d in drones) / total, 2) if total else 0.0,
    }

    today = _start_of_day(now)
    daily = bucketed_completions(activities, now, 1, 7)
    trend = calculate_trend(bucketed_completions(activities, now, bucket_days, bucket_count))
    productivity = {
        "items_completed_today": completion_counts(activities, today),
        "items_completed_this_week": completion_counts(activities, today - timedelta(days=7)),
        "velocity": round(calculate_velocity(daily), 2),
        "velocity_trend": trend.trend,
        "trend_confidence": trend.confidence,
    }

    bottlenecks = find_bottlenecks(drones)

    return {
        "timestamp": now,
        "period": period,
        "overview": overview,
        "productivity": productivity,
        "bottlenecks": bottlenecks,
        "milestones": find_milestones(drones, activities, now),
        "team_efficiency": team_efficiency(drones, len(bottlenecks)),
    }
