"""Drone build trees and the item status transition handler.

A build tree is a drone's private copy of the weight model: systems own
assemblies, assemblies own items, and every level carries a completion
percentage derived bottom-up from item statuses.

Pure functions with no external dependencies. Persistence and notification
delivery belong to the service layer.
"""

import uuid
from collections.abc import Callable, Iterator
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from fleetbuild.core.exceptions import InvalidStatusError, ItemNotFoundError
from fleetbuild.domain.completion import (
    ITEM_STATUSES,
    PENDING,
    assembly_completion,
    derive_drone_status,
    drone_completion,
    status_action,
    system_completion,
)
from fleetbuild.domain.weight_model import WeightModel


@dataclass
class ItemNode:
    id: str
    name: str
    weight: float
    status: str = PENDING


@dataclass
class AssemblyNode:
    id: str
    name: str
    weight: float
    items: list[ItemNode] = field(default_factory=list)
    completion_percentage: float = 0.0


@dataclass
class SystemNode:
    id: str
    name: str
    weight: float
    assemblies: list[AssemblyNode] = field(default_factory=list)
    completion_percentage: float = 0.0


@dataclass
class DroneTree:
    serial: str
    model: str
    systems: list[SystemNode] = field(default_factory=list)
    status: str = PENDING
    overall_completion: float = 0.0
    id: str | None = None
    start_date: datetime | None = None
    estimated_completion: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def iter_items(self) -> Iterator[tuple[SystemNode, AssemblyNode, ItemNode]]:
        for system in self.systems:
            for assembly in system.assemblies:
                for item in assembly.items:
                    yield system, assembly, item

    def find_item(self, item_id: str) -> tuple[SystemNode, AssemblyNode, ItemNode] | None:
        for system, assembly, item in self.iter_items():
            if item.id == item_id:
                return system, assembly, item
        return None

    def item_counts(self) -> dict[str, int]:
        counts = {status: 0 for status in ITEM_STATUSES}
        for _, _, item in self.iter_items():
            counts[item.status] = counts.get(item.status, 0) + 1
        return counts


@dataclass(frozen=True)
class BuildActivityRecord:
    """One immutable audit entry for an item transition."""

    drone_serial: str
    item_id: str
    item_name: str
    assembly_name: str
    system_name: str
    action: str
    status: str
    timestamp: datetime


@dataclass(frozen=True)
class StatusChangeEvent:
    """Emitted only when an item's status actually changed."""

    drone_serial: str
    model: str
    item_id: str
    item_name: str
    system_name: str
    assembly_name: str
    old_status: str
    new_status: str
    overall_completion: float
    previous_completion: float
    system_completion: float
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class TransitionResult:
    drone: DroneTree
    system: SystemNode
    assembly: AssemblyNode
    item: ItemNode
    old_status: str
    activity: BuildActivityRecord
    event: StatusChangeEvent | None


def _new_id() -> str:
    return str(uuid.uuid4())


def clone_weight_model(
    model: WeightModel,
    serial: str,
    drone_model: str,
    id_factory: Callable[[], str] = _new_id,
) -> DroneTree:
    """Create a fresh build tree for a drone with every item pending."""
    systems = [
        SystemNode(
            id=id_factory(),
            name=system_def.name,
            weight=system_def.weight,
            assemblies=[
                AssemblyNode(
                    id=id_factory(),
                    name=assembly_def.name,
                    weight=assembly_def.weight,
                    items=[
                        ItemNode(id=id_factory(), name=item_def.name, weight=item_def.weight)
                        for item_def in assembly_def.items
                    ],
                )
                for assembly_def in system_def.assemblies
            ],
        )
        for system_def in model.systems
    ]
    return DroneTree(serial=serial, model=drone_model, systems=systems)


def recompute_tree(tree: DroneTree) -> DroneTree:
    """Recompute every derived percentage and the drone status, bottom-up."""
    for system in tree.systems:
        for assembly in system.assemblies:
            assembly.completion_percentage = assembly_completion(assembly.items)
        system.completion_percentage = system_completion(system.assemblies)
    tree.overall_completion = drone_completion(tree.systems)
    tree.status = derive_drone_status(tree.overall_completion)
    return tree


def apply_item_statuses(tree: DroneTree, statuses: dict[str, dict[str, dict[str, str]]]) -> DroneTree:
    """Set many item statuses by name ({system: {assembly: {item: status}}}) and recompute.

    Unknown names are ignored. Used for seeding demo builds.
    """
    for system, assembly, item in tree.iter_items():
        status = statuses.get(system.name, {}).get(assembly.name, {}).get(item.name)
        if status is None:
            continue
        if status not in ITEM_STATUSES:
            raise InvalidStatusError(status, ITEM_STATUSES)
        item.status = status
    return recompute_tree(tree)


def apply_status_change(
    tree: DroneTree,
    item_id: str,
    new_status: str,
    now: datetime | None = None,
) -> TransitionResult:
    """Apply one item status change and roll the change up the tree.

    Every status may move to every other status. Re-applying the current
    status is allowed: percentages are recomputed and an activity is still
    recorded, but no change event is produced.

    Args:
        tree: Drone build tree, mutated in place on success
        item_id: Item to update
        new_status: One of pending, in-progress, completed
        now: Current time (for deterministic testing)

    Returns:
        TransitionResult with the activity record and optional change event

    Raises:
        InvalidStatusError: new_status not allowed (tree untouched)
        ItemNotFoundError: item_id not in this tree (tree untouched)
    """
    if new_status not in ITEM_STATUSES:
        raise InvalidStatusError(new_status, ITEM_STATUSES)

    location = tree.find_item(item_id)
    if location is None:
        raise ItemNotFoundError(tree.serial, item_id)

    now = now or datetime.now(UTC)
    system, assembly, item = location
    old_status = item.status
    previous_completion = tree.overall_completion

    item.status = new_status
    assembly.completion_percentage = assembly_completion(assembly.items)
    system.completion_percentage = system_completion(system.assemblies)
    tree.overall_completion = drone_completion(tree.systems)
    tree.status = derive_drone_status(tree.overall_completion)
    tree.updated_at = now

    activity = BuildActivityRecord(
        drone_serial=tree.serial,
        item_id=item.id,
        item_name=item.name,
        assembly_name=assembly.name,
        system_name=system.name,
        action=status_action(new_status),
        status=new_status,
        timestamp=now,
    )

    event = None
    if old_status != new_status:
        event = StatusChangeEvent(
            drone_serial=tree.serial,
            model=tree.model,
            item_id=item.id,
            item_name=item.name,
            system_name=system.name,
            assembly_name=assembly.name,
            old_status=old_status,
            new_status=new_status,
            overall_completion=tree.overall_completion,
            previous_completion=previous_completion,
            system_completion=system.completion_percentage,
            timestamp=now,
        )

    return TransitionResult(
        drone=tree,
        system=system,
        assembly=assembly,
        item=item,
        old_status=old_status,
        activity=activity,
        event=event,
    )
