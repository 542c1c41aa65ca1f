"""
Flotilla - declarative provisioning of bridged multipass VM fleets.

Stands up a small set of identically templated VMs with static addresses,
SSH key provisioning and guest network configuration from one YAML file.
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from flotilla.models.config import FleetConfig, GlobalConfig
from flotilla.models.instance import InstanceSpec
from flotilla.models.network import NetworkAttachment

__all__ = [
    "FleetConfig",
    "GlobalConfig",
    "InstanceSpec",
    "NetworkAttachment",
]
