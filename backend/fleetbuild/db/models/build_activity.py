"""BuildActivity model: append-only audit trail of item transitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String

from fleetbuild.db.base import Base


class BuildActivity(Base):
    __tablename__ = "build_activities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    drone_id = Column(String(36), ForeignKey("drones.id"), nullable=False, index=True)
    drone_serial = Column(String(50), nullable=False, index=True)

    item_id = Column(String(36), nullable=True)
    item_name = Column(String(100), nullable=False)
    assembly_name = Column(String(100), nullable=False)
    system_name = Column(String(100), nullable=False)
    action = Column(String(20), nullable=False)  # started, completed, updated
    status = Column(String(20), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    # NO updated_at -- activities are immutable (append-only)
