"""BuildService: drone registration, reads and item status transitions.

Orchestrates the pure build-tree functions with the database, the per-drone
lock and the notification dispatcher. No roll-up logic lives here.
"""

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime
from functools import lru_cache

import structlog
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from fleetbuild.core.config import get_settings
from fleetbuild.core.exceptions import (
    BuildTrackerError,
    DroneAlreadyExistsError,
    DroneNotFoundError,
    InvalidStatusError,
    PersistenceError,
)
from fleetbuild.core.locking import DroneLock, get_drone_lock
from fleetbuild.core.logging import drone_log_context
from fleetbuild.db.base import get_session_factory
from fleetbuild.db.models import (
    BuildActivity,
    Drone,
    DroneAssembly,
    DroneItem,
    DroneSystem,
    ItemDefinition,
    SystemDefinition,
)
from fleetbuild.db.seed import DEMO_FLEET, seed_weight_model
from fleetbuild.domain.build_tree import (
    AssemblyNode,
    BuildActivityRecord,
    DroneTree,
    ItemNode,
    SystemNode,
    TransitionResult,
    apply_item_statuses,
    apply_status_change,
    clone_weight_model,
)
from fleetbuild.domain.completion import COMPLETED, ITEM_STATUSES, status_action
from fleetbuild.domain.weight_model import DEFAULT_WEIGHT_MODEL, WeightModel, load_weight_model
from fleetbuild.services.notification_dispatcher import NotificationDispatcher, get_dispatcher

logger = structlog.get_logger(__name__)


@lru_cache
def get_weight_model() -> WeightModel:
    """Load the configured weight model once (built-in model when no path is set).

    Raises:
        WeightModelError: configured file missing or invalid
    """
    settings = get_settings()
    if settings.weight_model_path:
        return load_weight_model(settings.weight_model_path)
    return DEFAULT_WEIGHT_MODEL


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _tree_options():
    return (
        selectinload(Drone.systems).selectinload(DroneSystem.definition),
        selectinload(Drone.systems)
        .selectinload(DroneSystem.assemblies)
        .selectinload(DroneAssembly.definition),
        selectinload(Drone.systems)
        .selectinload(DroneSystem.assemblies)
        .selectinload(DroneAssembly.items)
        .selectinload(DroneItem.definition),
    )


def drone_to_tree(drone: Drone) -> DroneTree:
    """Map a fully loaded Drone row to its build tree."""
    return DroneTree(
        id=drone.id,
        serial=drone.serial,
        model=drone.model,
        status=drone.status,
        overall_completion=drone.overall_completion,
        start_date=_aware(drone.start_date),
        estimated_completion=_aware(drone.estimated_completion),
        created_at=_aware(drone.created_at),
        updated_at=_aware(drone.updated_at),
        systems=[
            SystemNode(
                id=system.id,
                name=system.definition.name,
                weight=system.definition.weight,
                completion_percentage=system.completion_percentage,
                assemblies=[
                    AssemblyNode(
                        id=assembly.id,
                        name=assembly.definition.name,
                        weight=assembly.definition.weight,
                        completion_percentage=assembly.completion_percentage,
                        items=[
                            ItemNode(
                                id=item.id,
                                name=item.definition.name,
                                weight=item.definition.weight,
                                status=item.status,
                            )
                            for item in assembly.items
                        ],
                    )
                    for assembly in system.assemblies
                ],
            )
            for system in drone.systems
        ],
    )


def activity_to_record(row: BuildActivity) -> BuildActivityRecord:
    return BuildActivityRecord(
        drone_serial=row.drone_serial,
        item_id=row.item_id,
        item_name=row.item_name,
        assembly_name=row.assembly_name,
        system_name=row.system_name,
        action=row.action,
        status=row.status,
        timestamp=_aware(row.timestamp),
    )


def _activity_row(drone_id: str, record: BuildActivityRecord) -> BuildActivity:
    return BuildActivity(
        drone_id=drone_id,
        drone_serial=record.drone_serial,
        item_id=record.item_id,
        item_name=record.item_name,
        assembly_name=record.assembly_name,
        system_name=record.system_name,
        action=record.action,
        status=record.status,
        timestamp=record.timestamp,
    )


class BuildService:
    """Service layer for the fleet build trees.

    Every mutation of one drone runs under that drone's lock and commits in a
    single transaction. Change events go to the dispatcher after commit.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        drone_lock: DroneLock | None = None,
        dispatcher: NotificationDispatcher | None = None,
        weight_model: WeightModel | None = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.lock = drone_lock or get_drone_lock()
        self.dispatcher = dispatcher or get_dispatcher()
        self.weight_model = weight_model or get_weight_model()

    async def _load_drone(self, session: AsyncSession, serial: str) -> Drone:
        result = await session.execute(
            select(Drone).where(Drone.serial == serial).options(*_tree_options())
        )
        drone = result.scalar_one_or_none()
        if drone is None:
            raise DroneNotFoundError(serial)
        return drone

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register_drone(
        self,
        serial: str,
        model: str,
        start_date: datetime | None = None,
        estimated_completion: datetime | None = None,
        statuses: dict[str, dict[str, dict[str, str]]] | None = None,
    ) -> DroneTree:
        """Register a drone with a fresh copy of the weight model.

        Args:
            serial: Unique drone serial
            model: Drone model name
            start_date: Optional build start
            estimated_completion: Optional target date
            statuses: Optional initial item statuses by name, for seeding

        Returns:
            The new drone's build tree (all pending unless statuses given)

        Raises:
            DroneAlreadyExistsError: serial already registered
            PersistenceError: storage failure
        """
        tree = clone_weight_model(self.weight_model, serial, model)
        if statuses:
            apply_item_statuses(tree, statuses)
        now = datetime.now(UTC)
        tree.start_date = start_date
        tree.estimated_completion = estimated_completion
        tree.created_at = now
        tree.updated_at = now

        async with self.session_factory() as session:
            try:
                existing = await session.execute(select(Drone.id).where(Drone.serial == serial))
                if existing.scalar_one_or_none() is not None:
                    raise DroneAlreadyExistsError(serial)

                index = await seed_weight_model(session, self.weight_model)
                drone = Drone(
                    serial=serial,
                    model=model,
                    status=tree.status,
                    overall_completion=tree.overall_completion,
                    start_date=start_date,
                    estimated_completion=estimated_completion,
                    created_at=now,
                    updated_at=now,
                )
                session.add(drone)
                await session.flush()
                tree.id = drone.id

                for s_pos, system in enumerate(tree.systems):
                    session.add(DroneSystem(
                        id=system.id,
                        drone_id=drone.id,
                        system_definition_id=index.systems[system.name],
                        position=s_pos,
                        completion_percentage=system.completion_percentage,
                    ))
                    for a_pos, assembly in enumerate(system.assemblies):
                        session.add(DroneAssembly(
                            id=assembly.id,
                            drone_system_id=system.id,
                            assembly_definition_id=index.assemblies[(system.name, assembly.name)],
                            position=a_pos,
                            completion_percentage=assembly.completion_percentage,
                        ))
                        for i_pos, item in enumerate(assembly.items):
                            session.add(DroneItem(
                                id=item.id,
                                drone_assembly_id=assembly.id,
                                item_definition_id=index.items[(system.name, assembly.name, item.name)],
                                position=i_pos,
                                status=item.status,
                                updated_at=now,
                            ))
                            if item.status == COMPLETED:
                                session.add(_activity_row(drone.id, BuildActivityRecord(
                                    drone_serial=serial,
                                    item_id=item.id,
                                    item_name=item.name,
                                    assembly_name=assembly.name,
                                    system_name=system.name,
                                    action=status_action(item.status),
                                    status=item.status,
                                    timestamp=now,
                                )))

                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DroneAlreadyExistsError(serial) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("drone_register_failed", serial=serial, error=str(e))
                raise PersistenceError(f"Failed to register drone '{serial}'") from e

        logger.info(
            "drone_registered",
            serial=serial,
            model=model,
            items=self.weight_model.item_count(),
            overall_completion=tree.overall_completion,
        )
        return tree

    async def ensure_definitions(self) -> None:
        """Seed weight model definitions that are missing from the database."""
        async with self.session_factory() as session:
            try:
                await seed_weight_model(session, self.weight_model)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError("Failed to seed weight model definitions") from e
        logger.info("weight_model_seeded", systems=len(self.weight_model.systems))

    async def seed_demo_fleet(self) -> list[str]:
        """Register the demo drones that are not registered yet. Returns the new serials."""
        created = []
        for serial, (model, statuses) in DEMO_FLEET.items():
            try:
                await self.register_drone(serial, model, statuses=statuses)
            except DroneAlreadyExistsError:
                continue
            created.append(serial)
        logger.info("demo_fleet_seeded", created=created)
        return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_drone(self, serial: str) -> DroneTree:
        """Raises DroneNotFoundError if the serial is unknown."""
        async with self.session_factory() as session:
            return drone_to_tree(await self._load_drone(session, serial))

    async def list_drones(self) -> list[DroneTree]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Drone).options(*_tree_options()).order_by(Drone.serial)
            )
            return [drone_to_tree(d) for d in result.scalars().all()]

    async def list_activities(
        self,
        serial: str | None = None,
        limit: int | None = None,
        since: datetime | None = None,
    ) -> list[BuildActivityRecord]:
        """Activity records, newest first.

        Args:
            serial: Restrict to one drone (DroneNotFoundError if unknown)
            limit: Max records (None = no limit)
            since: Only records at or after this time
        """
        async with self.session_factory() as session:
            query = select(BuildActivity).order_by(BuildActivity.timestamp.desc())
            if serial is not None:
                exists = await session.execute(select(Drone.id).where(Drone.serial == serial))
                if exists.scalar_one_or_none() is None:
                    raise DroneNotFoundError(serial)
                query = query.where(BuildActivity.drone_serial == serial)
            if since is not None:
                query = query.where(BuildActivity.timestamp >= since)
            if limit is not None:
                query = query.limit(limit)

            result = await session.execute(query)
            return [activity_to_record(row) for row in result.scalars().all()]

    async def recent_activity_by_drone(self, limit: int) -> dict[str, list[BuildActivityRecord]]:
        """Latest `limit` activities per drone serial, newest first."""
        ranked = select(
            BuildActivity.id,
            func.row_number()
            .over(partition_by=BuildActivity.drone_serial, order_by=BuildActivity.timestamp.desc())
            .label("rank"),
        ).subquery()

        async with self.session_factory() as session:
            result = await session.execute(
                select(BuildActivity)
                .join(ranked, ranked.c.id == BuildActivity.id)
                .where(ranked.c.rank <= limit)
                .order_by(BuildActivity.drone_serial, BuildActivity.timestamp.desc())
            )
            grouped: dict[str, list[BuildActivityRecord]] = {}
            for row in result.scalars().all():
                grouped.setdefault(row.drone_serial, []).append(activity_to_record(row))
            return grouped

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def apply_status_change(self, serial: str, item_id: str, status: str) -> TransitionResult:
        """Change one item's status and persist the rolled-up tree.

        Returns:
            TransitionResult for the committed change

        Raises:
            InvalidStatusError: status not allowed (nothing written)
            DroneNotFoundError: unknown serial
            ItemNotFoundError: unknown item on this drone (nothing written)
            DroneBusyError: drone lock not acquired in time
            PersistenceError: storage or lock backend failure (transaction rolled back)
        """
        if status not in ITEM_STATUSES:
            raise InvalidStatusError(status, ITEM_STATUSES)

        with drone_log_context(serial, item_id=item_id):
            try:
                async with self.lock.hold(serial):
                    result = await self._persist_status_change(serial, item_id, status)
            except RedisError as e:
                logger.error("drone_lock_unavailable", error=str(e), error_type=type(e).__name__)
                raise PersistenceError(f"Write lock for drone '{serial}' is unavailable") from e

            if result.event is not None:
                self.dispatcher.publish(result.event)

            logger.info(
                "item_status_changed",
                old_status=result.old_status,
                new_status=status,
                overall_completion=result.drone.overall_completion,
            )
        return result

    async def _persist_status_change(self, serial: str, item_id: str, status: str) -> TransitionResult:
        """Load, apply and commit one change. Caller holds the drone lock."""
        async with self.session_factory() as session:
            try:
                drone = await self._load_drone(session, serial)
                result = apply_status_change(drone_to_tree(drone), item_id, status)
                self._write_back(drone, result)
                session.add(_activity_row(drone.id, result.activity))
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("item_status_persist_failed", error=str(e), error_type=type(e).__name__)
                raise PersistenceError(f"Failed to persist status change on drone '{serial}'") from e
        return result

    @staticmethod
    def _write_back(drone: Drone, result: TransitionResult) -> None:
        """Copy the changed item and recomputed percentages onto the loaded rows."""
        for system_row in drone.systems:
            if system_row.id != result.system.id:
                continue
            system_row.completion_percentage = result.system.completion_percentage
            for assembly_row in system_row.assemblies:
                if assembly_row.id != result.assembly.id:
                    continue
                assembly_row.completion_percentage = result.assembly.completion_percentage
                for item_row in assembly_row.items:
                    if item_row.id == result.item.id:
                        item_row.status = result.item.status
                        item_row.updated_at = result.activity.timestamp

        drone.overall_completion = result.drone.overall_completion
        drone.status = result.drone.status
        drone.updated_at = result.drone.updated_at

    async def apply_bulk(self, changes: Iterable[tuple[str, str, str]]) -> list[dict]:
        """Apply independent status changes concurrently.

        Args:
            changes: (serial, item_id, status) tuples

        Returns:
            One result dict per change, in input order:
            {serial, item_id, success, error, overall_completion}
        """

        def _failed(serial: str, item_id: str, error: str) -> dict:
            return {
                "serial": serial,
                "item_id": item_id,
                "success": False,
                "error": error,
                "overall_completion": None,
            }

        async def _apply_one(serial: str, item_id: str, status: str) -> dict:
            try:
                result = await self.apply_status_change(serial, item_id, status)
            except BuildTrackerError as e:
                logger.warning("bulk_change_failed", serial=serial, item_id=item_id, error=e.detail)
                return _failed(serial, item_id, e.detail)
            except Exception as e:
                # Other changes in the batch may already be committed
                logger.error(
                    "bulk_change_error",
                    serial=serial,
                    item_id=item_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return _failed(serial, item_id, f"Unexpected error ({type(e).__name__})")
            return {
                "serial": serial,
                "item_id": item_id,
                "success": True,
                "error": None,
                "overall_completion": result.drone.overall_completion,
            }

        results = await asyncio.gather(*(_apply_one(*change) for change in changes))
        logger.info(
            "bulk_status_applied",
            total=len(results),
            succeeded=sum(1 for r in results if r["success"]),
        )
        return list(results)

    async def counts(self) -> dict[str, int]:
        """Row counts used by the database health check."""
        async with self.session_factory() as session:
            drones = await session.scalar(select(func.count()).select_from(Drone))
            systems = await session.scalar(select(func.count()).select_from(SystemDefinition))
            items = await session.scalar(select(func.count()).select_from(ItemDefinition))
        return {"drones": drones or 0, "system_definitions": systems or 0, "item_definitions": items or 0}
