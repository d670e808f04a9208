"""Pydantic schemas for the executive report."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class FleetOverview(BaseModel):
    total_drones: int
    completed_drones: int
    in_progress_drones: int
    pending_drones: int
    overall_completion_rate: float = Field(..., description="Mean overall completion across the fleet")


class Productivity(BaseModel):
    items_completed_today: int
    items_completed_this_week: int
    velocity: float = Field(..., description="Mean items completed per day over the last 7 days")
    velocity_trend: str = Field(..., description="increasing, decreasing or stable")
    trend_confidence: float = Field(..., ge=0, le=100)


class Bottleneck(BaseModel):
    system_name: str
    average_completion: float
    issue_type: str = Field(..., description="stalled, slow_progress or resource_constraint")
    recommendation: str


class Milestone(BaseModel):
    drone_serial: str
    model: str
    milestone: int
    achieved_at: datetime | None = None
    next_milestone: int
    estimated_completion: datetime | None = None
    forecast_date: date | None = None
    forecast_confidence: str


class TeamEfficiency(BaseModel):
    total_items: int
    total_active_items: int
    completion_rate: float
    recommended_actions: list[str] = Field(default_factory=list)


class ExecutiveSummaryResponse(BaseModel):
    """Fleet-wide executive summary."""

    timestamp: datetime
    period: str
    overview: FleetOverview
    productivity: Productivity
    bottlenecks: list[Bottleneck] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    team_efficiency: TeamEfficiency
