"""ReportService: executive summary and CSV exports over the fleet."""

from datetime import UTC, datetime, timedelta

import structlog

from fleetbuild.domain.export import activities_to_csv, drones_to_csv, items_to_csv
from fleetbuild.domain.reports import PERIOD_BUCKETS, build_executive_summary
from fleetbuild.services.build_service import BuildService

logger = structlog.get_logger(__name__)


class ReportService:
    def __init__(self, build_service: BuildService):
        self.builds = build_service

    async def executive_summary(self, period: str = "daily", now: datetime | None = None) -> dict:
        """Load the fleet and the activity window the period needs, then aggregate."""
        now = now or datetime.now(UTC)
        bucket_days, bucket_count = PERIOD_BUCKETS.get(period, PERIOD_BUCKETS["daily"])
        # Cover both the trend window and the 7-day productivity counts
        window_days = max(bucket_days * bucket_count, 8)
        since = now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=window_days)

        drones = await self.builds.list_drones()
        activities = await self.builds.list_activities(since=since)
        summary = build_executive_summary(drones, activities, period, now)

        logger.info(
            "executive_summary_generated",
            period=period,
            drones=len(drones),
            activities=len(activities),
        )
        return summary

    async def export_drones_csv(self) -> str:
        return drones_to_csv(await self.builds.list_drones())

    async def export_items_csv(self) -> str:
        return items_to_csv(await self.builds.list_drones())

    async def export_activities_csv(self, serial: str | None = None) -> str:
        return activities_to_csv(await self.builds.list_activities(serial=serial))
