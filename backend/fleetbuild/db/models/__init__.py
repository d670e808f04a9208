"""Re-export all models so Base.metadata sees them."""

from fleetbuild.db.models.build_activity import BuildActivity
from fleetbuild.db.models.definitions import AssemblyDefinition, ItemDefinition, SystemDefinition
from fleetbuild.db.models.drone import Drone, DroneAssembly, DroneItem, DroneSystem

__all__ = [
    "AssemblyDefinition",
    "BuildActivity",
    "Drone",
    "DroneAssembly",
    "DroneItem",
    "DroneSystem",
    "ItemDefinition",
    "SystemDefinition",
]
