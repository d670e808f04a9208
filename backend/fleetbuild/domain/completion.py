"""Deterministic completion roll-up functions.

Pure functions with no external dependencies.
"""

from collections.abc import Iterable

PENDING = "pending"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"

ITEM_STATUSES: tuple[str, ...] = (PENDING, IN_PROGRESS, COMPLETED)

STATUS_CREDIT: dict[str, float] = {
    COMPLETED: 1.0,
    IN_PROGRESS: 0.5,
    PENDING: 0.0,
}

# Drones count as completed at this overall percentage (tolerates rounding).
COMPLETION_THRESHOLD = 99.9


def status_credit(status: str) -> float:
    """Credit earned by an item in the given status (0.0 for unknown statuses)."""
    return STATUS_CREDIT.get(status, 0.0)


def weighted_completion(pairs: Iterable[tuple[float, float]]) -> float:
    """Compute 100 * sum(weight * credit) / sum(weight).

    Args:
        pairs: (weight, credit) tuples, credit in [0.0, 1.0]

    Returns:
        Float percentage 0-100; 0 when total weight is 0
    """
    total_weight = 0.0
    earned = 0.0
    for weight, credit in pairs:
        total_weight += weight
        earned += weight * credit

    if total_weight == 0:
        return 0.0

    # earned <= total_weight holds in floating point, so the ratio never exceeds 1
    return 100.0 * (earned / total_weight)


def assembly_completion(items: Iterable) -> float:
    """Weighted credit over an assembly's items (objects with .weight and .status)."""
    return weighted_completion((item.weight, status_credit(item.status)) for item in items)


def system_completion(assemblies: Iterable) -> float:
    """Weighted average of assembly percentages, weighted by assembly weight."""
    return weighted_completion(
        (assembly.weight, assembly.completion_percentage / 100.0) for assembly in assemblies
    )


def drone_completion(systems: Iterable) -> float:
    """Weighted average of system percentages, rounded to 1 decimal place."""
    overall = weighted_completion(
        (system.weight, system.completion_percentage / 100.0) for system in systems
    )
    return round(overall, 1)


def derive_drone_status(overall_completion: float) -> str:
    """Map an overall percentage to a drone status.

    completed at or above COMPLETION_THRESHOLD, in-progress above 0, pending otherwise.
    """
    if overall_completion >= COMPLETION_THRESHOLD:
        return COMPLETED
    if overall_completion > 0:
        return IN_PROGRESS
    return PENDING


def status_action(status: str) -> str:
    """Activity action recorded for a transition into the given status."""
    if status == COMPLETED:
        return "completed"
    if status == IN_PROGRESS:
        return "started"
    return "updated"
