"""Weight model definition tables: seeded once, read-only afterwards."""

from sqlalchemy import Column, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from fleetbuild.db.base import Base


class SystemDefinition(Base):
    __tablename__ = "system_definitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    weight = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    assemblies = relationship(
        "AssemblyDefinition",
        back_populates="system",
        order_by="AssemblyDefinition.position",
    )


class AssemblyDefinition(Base):
    __tablename__ = "assembly_definitions"
    __table_args__ = (UniqueConstraint("system_definition_id", "name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    system_definition_id = Column(Integer, ForeignKey("system_definitions.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    system = relationship("SystemDefinition", back_populates="assemblies")
    items = relationship(
        "ItemDefinition",
        back_populates="assembly",
        order_by="ItemDefinition.position",
    )


class ItemDefinition(Base):
    __tablename__ = "item_definitions"
    __table_args__ = (UniqueConstraint("assembly_definition_id", "name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    assembly_definition_id = Column(Integer, ForeignKey("assembly_definitions.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    assembly = relationship("AssemblyDefinition", back_populates="items")
