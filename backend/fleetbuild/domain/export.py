"""CSV exports of fleet build data."""

import csv
import io
from datetime import datetime

from fleetbuild.domain.build_tree import BuildActivityRecord, DroneTree

ITEM_COLUMNS = [
    "drone_serial",
    "drone_model",
    "drone_status",
    "drone_overall_completion",
    "system_id",
    "system_name",
    "system_weight",
    "system_completion",
    "assembly_id",
    "assembly_name",
    "assembly_weight",
    "assembly_completion",
    "item_id",
    "item_name",
    "item_weight",
    "item_status",
]

ACTIVITY_COLUMNS = [
    "drone_serial",
    "timestamp",
    "item_id",
    "item_name",
    "assembly_name",
    "system_name",
    "action",
    "status",
]


def _fmt(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _write(header: list[str], rows: list[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows([[_fmt(v) for v in row] for row in rows])
    return buffer.getvalue()


def drones_to_csv(drones: list[DroneTree]) -> str:
    """One row per drone with per-system columns (system_1_name, system_1_completion, ...)."""
    system_slots = max((len(d.systems) for d in drones), default=0)

    header = [
        "serial",
        "model",
        "status",
        "overall_completion",
        "start_date",
        "estimated_completion",
        "system_count",
    ]
    for n in range(1, system_slots + 1):
        header += [f"system_{n}_name", f"system_{n}_completion", f"system_{n}_weight", f"system_{n}_assemblies"]
    header += ["avg_system_completion", "total_items"]

    rows = []
    for drone in drones:
        row = [
            drone.serial,
            drone.model,
            drone.status,
            drone.overall_completion,
            drone.start_date,
            drone.estimated_completion,
            len(drone.systems),
        ]
        for n in range(system_slots):
            if n < len(drone.systems):
                system = drone.systems[n]
                row += [system.name, round(system.completion_percentage, 1), system.weight, len(system.assemblies)]
            else:
                row += [None, None, None, None]
        avg = (
            round(sum(s.completion_percentage for s in drone.systems) / len(drone.systems), 1)
            if drone.systems
            else 0
        )
        row += [avg, sum(1 for _ in drone.iter_items())]
        rows.append(row)

    return _write(header, rows)


def items_to_csv(drones: list[DroneTree]) -> str:
    """One row per item across the fleet."""
    rows = [
        [
            drone.serial,
            drone.model,
            drone.status,
            drone.overall_completion,
            system.id,
            system.name,
            system.weight,
            round(system.completion_percentage, 1),
            assembly.id,
            assembly.name,
            assembly.weight,
            round(assembly.completion_percentage, 1),
            item.id,
            item.name,
            item.weight,
            item.status,
        ]
        for drone in drones
        for system, assembly, item in drone.iter_items()
    ]
    return _write(ITEM_COLUMNS, rows)


def activities_to_csv(activities: list[BuildActivityRecord]) -> str:
    rows = [
        [
            a.drone_serial,
            a.timestamp,
            a.item_id,
            a.item_name,
            a.assembly_name,
            a.system_name,
            a.action,
            a.status,
        ]
        for a in activities
    ]
    return _write(ACTIVITY_COLUMNS, rows)
