"""Idempotent seed data for weight model definitions and the demo fleet."""

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetbuild.db.models.definitions import AssemblyDefinition, ItemDefinition, SystemDefinition
from fleetbuild.domain.completion import COMPLETED, IN_PROGRESS
from fleetbuild.domain.weight_model import WeightModel


@dataclass
class DefinitionIndex:
    """Definition row ids keyed by name path."""

    systems: dict[str, int] = field(default_factory=dict)
    assemblies: dict[tuple[str, str], int] = field(default_factory=dict)
    items: dict[tuple[str, str, str], int] = field(default_factory=dict)


# serial -> (model, {system: {assembly: {item: status}}}); unlisted items stay pending
DEMO_FLEET = {
    "S1": (
        "G1-M",
        {
            "Airframe": {"Structure": {"Composite": COMPLETED, "Diamond Frame": COMPLETED}},
        },
    ),
    "S2": (
        "G1-C",
        {
            "Airframe": {
                "Structure": {"Composite": COMPLETED, "Diamond Frame": COMPLETED},
                "Landing & Payload": {"Legs": COMPLETED, "Payload Rails": COMPLETED},
            },
            "Propulsion": {
                "Lifters": {"Lifter Motors": COMPLETED, "Lifter Propellers": COMPLETED},
                "Tractors": {"Tractor Install": COMPLETED, "Tractor Assembly": COMPLETED, "ESC Install": COMPLETED},
            },
            "Power": {
                "Power Distribution": {"Busbar": COMPLETED},
                "Wire Harnessing": {"Powertrain Harnessing": COMPLETED, "Avionics Harnessing": IN_PROGRESS},
            },
            "Avionics": {
                "Flight Control": {
                    "Flight Stack": COMPLETED,
                    "Distribution Board": COMPLETED,
                    "Interface Board": COMPLETED,
                    "GPS Magnetometer": IN_PROGRESS,
                },
            },
        },
    ),
    "S3": ("G1-M", {}),
}


async def seed_weight_model(session: AsyncSession, model: WeightModel) -> DefinitionIndex:
    """Insert any definition rows missing for the model and return their ids.

    Existing rows are matched by name and left untouched. The caller commits.
    """
    result = await session.execute(
        select(SystemDefinition).options(
            selectinload(SystemDefinition.assemblies).selectinload(AssemblyDefinition.items)
        )
    )
    existing = {row.name: row for row in result.scalars().all()}

    index = DefinitionIndex()
    for s_pos, system_def in enumerate(model.systems):
        system_row = existing.get(system_def.name)
        if system_row is None:
            system_row = SystemDefinition(
                name=system_def.name,
                weight=system_def.weight,
                position=s_pos,
                assemblies=[],
            )
            session.add(system_row)
            existing[system_def.name] = system_row

        assembly_rows = {a.name: a for a in system_row.assemblies}
        for a_pos, assembly_def in enumerate(system_def.assemblies):
            assembly_row = assembly_rows.get(assembly_def.name)
            if assembly_row is None:
                assembly_row = AssemblyDefinition(
                    name=assembly_def.name,
                    weight=assembly_def.weight,
                    position=a_pos,
                    items=[],
                )
                system_row.assemblies.append(assembly_row)

            item_rows = {i.name: i for i in assembly_row.items}
            for i_pos, item_def in enumerate(assembly_def.items):
                if item_def.name not in item_rows:
                    item_row = ItemDefinition(name=item_def.name, weight=item_def.weight, position=i_pos)
                    assembly_row.items.append(item_row)
                    item_rows[item_def.name] = item_row

    await session.flush()

    for system_def in model.systems:
        system_row = existing[system_def.name]
        index.systems[system_def.name] = system_row.id
        for assembly_row in system_row.assemblies:
            index.assemblies[(system_def.name, assembly_row.name)] = assembly_row.id
            for item_row in assembly_row.items:
                index.items[(system_def.name, assembly_row.name, item_row.name)] = item_row.id

    return index
