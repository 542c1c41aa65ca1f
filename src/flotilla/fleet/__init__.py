"""Fleet configuration and provisioning lifecycle."""

from flotilla.fleet.config import ConfigManager
from flotilla.fleet.engine import FleetEngine

__all__ = ["ConfigManager", "FleetEngine"]
