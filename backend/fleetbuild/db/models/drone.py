"""Drone build-tree instance tables.

Rows are created together when a drone is registered. Only item status
changes; completion columns are written back by the transition handler.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from fleetbuild.db.base import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


class Drone(Base):
    __tablename__ = "drones"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    serial = Column(String(50), unique=True, nullable=False, index=True)
    model = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    overall_completion = Column(Float, nullable=False, default=0.0)

    start_date = Column(DateTime(timezone=True), nullable=True)
    estimated_completion = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    systems = relationship(
        "DroneSystem",
        back_populates="drone",
        order_by="DroneSystem.position",
        cascade="all, delete-orphan",
    )


class DroneSystem(Base):
    __tablename__ = "drone_systems"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    drone_id = Column(String(36), ForeignKey("drones.id"), nullable=False, index=True)
    system_definition_id = Column(Integer, ForeignKey("system_definitions.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    completion_percentage = Column(Float, nullable=False, default=0.0)

    drone = relationship("Drone", back_populates="systems")
    definition = relationship("SystemDefinition")
    assemblies = relationship(
        "DroneAssembly",
        back_populates="system",
        order_by="DroneAssembly.position",
        cascade="all, delete-orphan",
    )


class DroneAssembly(Base):
    __tablename__ = "drone_assemblies"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    drone_system_id = Column(String(36), ForeignKey("drone_systems.id"), nullable=False, index=True)
    assembly_definition_id = Column(Integer, ForeignKey("assembly_definitions.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    completion_percentage = Column(Float, nullable=False, default=0.0)

    system = relationship("DroneSystem", back_populates="assemblies")
    definition = relationship("AssemblyDefinition")
    items = relationship(
        "DroneItem",
        back_populates="assembly",
        order_by="DroneItem.position",
        cascade="all, delete-orphan",
    )


class DroneItem(Base):
    __tablename__ = "drone_items"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    drone_assembly_id = Column(String(36), ForeignKey("drone_assemblies.id"), nullable=False, index=True)
    item_definition_id = Column(Integer, ForeignKey("item_definitions.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")  # pending, in-progress, completed

    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    assembly = relationship("DroneAssembly", back_populates="items")
    definition = relationship("ItemDefinition")
