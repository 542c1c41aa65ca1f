"""Pydantic models for configuration and provisioning state."""

from flotilla.models.config import FleetConfig, GlobalConfig, SecretBundle
from flotilla.models.instance import InstanceSpec
from flotilla.models.network import NetworkAdapter, NetworkAttachment, BRIDGED_NETWORK_ARG
from flotilla.models.cloudinit import CloudInitDocument
from flotilla.models.fleet import FleetEntry, FleetRun, InstanceResult

__all__ = [
    "FleetConfig",
    "GlobalConfig",
    "SecretBundle",
    "InstanceSpec",
    "NetworkAdapter",
    "NetworkAttachment",
    "BRIDGED_NETWORK_ARG",
    "CloudInitDocument",
    "FleetEntry",
    "FleetRun",
    "InstanceResult",
]
