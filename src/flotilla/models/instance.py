"""Instance specification models."""

import ipaddress
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InstanceSpec(BaseModel):
    """A single VM declared in the fleet configuration."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., description="Instance name, also the guest hostname")
    ip: str = Field(..., description="Static address in CIDR notation")
    gateway: str = Field(..., description="Default route gateway")
    dns: List[str] = Field(..., min_length=1, description="Ordered nameserver list")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Instance names double as VM identifiers and file names."""
        if not v or any(ch.isspace() for ch in v):
            raise ValueError(f"Invalid instance name: {v!r}")
        return v

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v):
        """Require an address with an explicit prefix length."""
        if "/" not in v:
            raise ValueError(f"Static IP must be in CIDR notation: {v}")
        try:
            ipaddress.ip_interface(v)
        except ValueError as e:
            raise ValueError(f"Invalid static IP {v}: {e}") from e
        return v

    @field_validator("gateway")
    @classmethod
    def validate_gateway(cls, v):
        """Validate gateway address."""
        try:
            ipaddress.ip_address(v)
        except ValueError as e:
            raise ValueError(f"Invalid gateway {v}: {e}") from e
        return v

    @property
    def dns_csv(self) -> str:
        """Nameservers joined the way the netplan address list expects."""
        return ",".join(self.dns)

    @property
    def cloud_init_filename(self) -> str:
        """Deterministic file name for this instance's cloud-init document."""
        return f"{self.name}-cloud-init.yaml"
