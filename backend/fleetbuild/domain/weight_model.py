"""Static weight model: systems, assemblies and items with relative weights.

Weights are relative shares within a sibling group and need not sum to 100.
The model is loaded once at startup and shared read-only by every build tree.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fleetbuild.core.exceptions import WeightModelError


@dataclass(frozen=True)
class ItemDefinition:
    name: str
    weight: float


@dataclass(frozen=True)
class AssemblyDefinition:
    name: str
    weight: float
    items: tuple[ItemDefinition, ...]


@dataclass(frozen=True)
class SystemDefinition:
    name: str
    weight: float
    assemblies: tuple[AssemblyDefinition, ...]


@dataclass(frozen=True)
class WeightModel:
    systems: tuple[SystemDefinition, ...]

    def item_count(self) -> int:
        return sum(len(a.items) for s in self.systems for a in s.assemblies)

    def to_dict(self) -> dict[str, Any]:
        return {
            "systems": [
                {
                    "name": s.name,
                    "weight": s.weight,
                    "assemblies": [
                        {
                            "name": a.name,
                            "weight": a.weight,
                            "items": [{"name": i.name, "weight": i.weight} for i in a.items],
                        }
                        for a in s.assemblies
                    ],
                }
                for s in self.systems
            ]
        }


def _check_weight(path: str, weight: Any) -> float:
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise WeightModelError(f"{path}: weight must be a number, got {weight!r}")
    if weight <= 0:
        raise WeightModelError(f"{path}: weight must be positive, got {weight}")
    return float(weight)


def _check_name(path: str, name: Any, seen: set[str]) -> str:
    if not isinstance(name, str) or not name.strip():
        raise WeightModelError(f"{path}: name must be a non-empty string")
    if name in seen:
        raise WeightModelError(f"{path}: duplicate name '{name}'")
    seen.add(name)
    return name


def _check_entry(path: str, raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise WeightModelError(f"{path}: expected an object, got {type(raw).__name__}")
    return raw


def _check_group(path: str, raw: Any, kind: str) -> list[Any]:
    if not isinstance(raw, list) or not raw:
        raise WeightModelError(f"{path}: {kind} must be a non-empty list")
    return raw


def parse_weight_model(data: dict[str, Any]) -> WeightModel:
    """Build a validated WeightModel from its dict form.

    Raises:
        WeightModelError: on missing groups, bad weights or duplicate sibling names
    """
    if not isinstance(data, dict) or not data.get("systems"):
        raise WeightModelError("weight model must define at least one system")
    raw_systems = _check_group("systems", data["systems"], "systems")

    systems = []
    system_names: set[str] = set()
    for s_idx, raw_system in enumerate(raw_systems):
        s_path = f"systems[{s_idx}]"
        raw_system = _check_entry(s_path, raw_system)
        s_name = _check_name(s_path, raw_system.get("name"), system_names)
        s_weight = _check_weight(f"{s_path} ({s_name})", raw_system.get("weight"))

        raw_assemblies = raw_system.get("assemblies")
        if not raw_assemblies:
            raise WeightModelError(f"{s_path} ({s_name}): system has no assemblies")
        _check_group(f"{s_path} ({s_name}).assemblies", raw_assemblies, "assemblies")

        assemblies = []
        assembly_names: set[str] = set()
        for a_idx, raw_assembly in enumerate(raw_assemblies):
            a_path = f"{s_path}.assemblies[{a_idx}]"
            raw_assembly = _check_entry(a_path, raw_assembly)
            a_name = _check_name(a_path, raw_assembly.get("name"), assembly_names)
            a_weight = _check_weight(f"{a_path} ({a_name})", raw_assembly.get("weight"))

            raw_items = raw_assembly.get("items")
            if not raw_items:
                raise WeightModelError(f"{a_path} ({a_name}): assembly has no items")
            _check_group(f"{a_path} ({a_name}).items", raw_items, "items")

            item_names: set[str] = set()
            items = []
            for i_idx, raw_item in enumerate(raw_items):
                i_path = f"{a_path}.items[{i_idx}]"
                raw_item = _check_entry(i_path, raw_item)
                items.append(ItemDefinition(
                    name=_check_name(i_path, raw_item.get("name"), item_names),
                    weight=_check_weight(i_path, raw_item.get("weight")),
                ))
            assemblies.append(AssemblyDefinition(name=a_name, weight=a_weight, items=tuple(items)))

        systems.append(SystemDefinition(name=s_name, weight=s_weight, assemblies=tuple(assemblies)))

    return WeightModel(systems=tuple(systems))


def load_weight_model(path: str | Path) -> WeightModel:
    """Load and validate a weight model from a JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise WeightModelError(f"cannot read weight model from {path}: {e}") from e
    return parse_weight_model(data)


DEFAULT_WEIGHT_MODEL = parse_weight_model({
    "systems": [
        {
            "name": "Airframe",
            "weight": 20,
            "assemblies": [
                {"name": "Structure", "weight": 60, "items": [
                    {"name": "Composite", "weight": 50},
                    {"name": "Diamond Frame", "weight": 50},
                ]},
                {"name": "Landing & Payload", "weight": 40, "items": [
                    {"name": "Legs", "weight": 50},
                    {"name": "Payload Rails", "weight": 50},
                ]},
            ],
        },
        {
            "name": "Propulsion",
            "weight": 35,
            "assemblies": [
                {"name": "Lifters", "weight": 60, "items": [
                    {"name": "Lifter Motors", "weight": 60},
                    {"name": "Lifter Propellers", "weight": 40},
                ]},
                {"name": "Tractors", "weight": 40, "items": [
                    {"name": "Tractor Install", "weight": 35},
                    {"name": "Tractor Assembly", "weight": 35},
                    {"name": "ESC Install", "weight": 30},
                ]},
            ],
        },
        {
            "name": "Power",
            "weight": 30,
            "assemblies": [
                {"name": "Power Distribution", "weight": 40, "items": [
                    {"name": "Busbar", "weight": 100},
                ]},
                {"name": "Wire Harnessing", "weight": 60, "items": [
                    {"name": "Powertrain Harnessing", "weight": 50},
                    {"name": "Avionics Harnessing", "weight": 50},
                ]},
            ],
        },
        {
            "name": "Avionics",
            "weight": 25,
            "assemblies": [
                {"name": "Flight Control", "weight": 50, "items": [
                    {"name": "Flight Stack", "weight": 30},
                    {"name": "Distribution Board", "weight": 20},
                    {"name": "Interface Board", "weight": 20},
                    {"name": "GPS Magnetometer", "weight": 15},
                    {"name": "Downward LiDAR", "weight": 15},
                ]},
                {"name": "Mission Systems", "weight": 50, "items": [
                    {"name": "Mission Computer", "weight": 25},
                    {"name": "Skynode X", "weight": 25},
                    {"name": "Carrier Board", "weight": 20},
                    {"name": "Running Lights", "weight": 15},
                    {"name": "RS232 Plugin", "weight": 15},
                ]},
            ],
        },
        {
            "name": "Radio",
            "weight": 5,
            "assemblies": [
                {"name": "Communications", "weight": 100, "items": [
                    {"name": "Radio System", "weight": 100},
                ]},
            ],
        },
        {
            "name": "Camera",
            "weight": 5,
            "assemblies": [
                {"name": "Imaging", "weight": 100, "items": [
                    {"name": "Camera System", "weight": 100},
                ]},
            ],
        },
    ]
})
