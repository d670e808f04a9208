"""Pydantic schemas for drone, item and activity API payloads.

All list fields default to empty arrays (never null).
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from fleetbuild.domain.build_tree import BuildActivityRecord, DroneTree

ItemStatus = Literal["pending", "in-progress", "completed"]


class RegisterDroneRequest(BaseModel):
    """Request model for drone registration."""

    serial: str = Field(..., min_length=1, max_length=50, description="Unique drone serial")
    model: str = Field(..., min_length=1, max_length=50, description="Drone model (e.g., G1-M)")
    start_date: datetime | None = Field(None, description="Build start date")
    estimated_completion: datetime | None = Field(None, description="Target completion date")


class ItemStatusUpdateRequest(BaseModel):
    """Request model for a single item status change.

    status is validated by the transition handler so an unknown value yields
    400 rather than a schema error.
    """

    item_id: str = Field(..., min_length=1, description="Item id within the drone")
    status: str = Field(..., description="pending, in-progress or completed")


class BulkStatusChange(BaseModel):
    serial: str = Field(..., min_length=1)
    item_id: str = Field(..., min_length=1)
    status: str


class BulkStatusRequest(BaseModel):
    changes: list[BulkStatusChange] = Field(..., min_length=1, description="Independent per-drone changes")


class BulkStatusResult(BaseModel):
    serial: str
    item_id: str
    success: bool
    error: str | None = None
    overall_completion: float | None = None


class BulkStatusResponse(BaseModel):
    results: list[BulkStatusResult] = Field(default_factory=list)
    succeeded: int
    failed: int


class ItemResponse(BaseModel):
    id: str
    name: str
    weight: float
    status: ItemStatus


class AssemblyResponse(BaseModel):
    id: str
    name: str
    weight: float
    completion_percentage: float
    items: list[ItemResponse] = Field(default_factory=list)


class SystemResponse(BaseModel):
    id: str
    name: str
    weight: float
    completion_percentage: float
    assemblies: list[AssemblyResponse] = Field(default_factory=list)


class ActivityResponse(BaseModel):
    """One build activity entry (append-only audit trail)."""

    drone_serial: str
    item_id: str | None = None
    item_name: str
    assembly_name: str
    system_name: str
    action: str = Field(..., description="started, completed or updated")
    status: str
    timestamp: datetime

    @classmethod
    def from_record(cls, record: BuildActivityRecord) -> "ActivityResponse":
        return cls(
            drone_serial=record.drone_serial,
            item_id=record.item_id,
            item_name=record.item_name,
            assembly_name=record.assembly_name,
            system_name=record.system_name,
            action=record.action,
            status=record.status,
            timestamp=record.timestamp,
        )


class DroneResponse(BaseModel):
    """Full drone build tree with derived percentages."""

    id: str | None = None
    serial: str
    model: str
    status: str = Field(..., description="pending, in-progress or completed")
    overall_completion: float = Field(..., ge=0, le=100)
    start_date: datetime | None = None
    estimated_completion: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    systems: list[SystemResponse] = Field(default_factory=list)
    recent_activities: list[ActivityResponse] = Field(default_factory=list)

    @classmethod
    def from_tree(
        cls,
        tree: DroneTree,
        activities: list[BuildActivityRecord] | None = None,
    ) -> "DroneResponse":
        return cls(
            id=tree.id,
            serial=tree.serial,
            model=tree.model,
            status=tree.status,
            overall_completion=tree.overall_completion,
            start_date=tree.start_date,
            estimated_completion=tree.estimated_completion,
            created_at=tree.created_at,
            updated_at=tree.updated_at,
            systems=[
                SystemResponse(
                    id=s.id,
                    name=s.name,
                    weight=s.weight,
                    completion_percentage=round(s.completion_percentage, 1),
                    assemblies=[
                        AssemblyResponse(
                            id=a.id,
                            name=a.name,
                            weight=a.weight,
                            completion_percentage=round(a.completion_percentage, 1),
                            items=[
                                ItemResponse(id=i.id, name=i.name, weight=i.weight, status=i.status)
                                for i in a.items
                            ],
                        )
                        for a in s.assemblies
                    ],
                )
                for s in tree.systems
            ],
            recent_activities=[ActivityResponse.from_record(r) for r in activities or []],
        )


class ItemStatusUpdateResponse(BaseModel):
    """Result of one item status change."""

    serial: str
    item_id: str
    old_status: str
    new_status: str
    changed: bool
    overall_completion: float
    drone_status: str
    activity: ActivityResponse
    drone: DroneResponse


class WeightModelItem(BaseModel):
    name: str
    weight: float


class WeightModelAssembly(BaseModel):
    name: str
    weight: float
    items: list[WeightModelItem] = Field(default_factory=list)


class WeightModelSystem(BaseModel):
    name: str
    weight: float
    assemblies: list[WeightModelAssembly] = Field(default_factory=list)


class WeightModelResponse(BaseModel):
    systems: list[WeightModelSystem] = Field(default_factory=list)
    item_count: int
