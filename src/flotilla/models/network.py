"""Network attachment models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


BRIDGED_NETWORK_ARG = "name=bridged,mode=manual"


class NetworkAdapter(BaseModel):
    """Physical host adapter a switch can be bound to."""
    name: str
    description: str = ""
    status: str = ""


class NetworkAttachment(BaseModel):
    """Resolved network reference handed to every launch."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["switch", "bridged"]
    argument: str = Field(..., description="Value for the launcher's --network option")
    switch_name: Optional[str] = None
    created: bool = Field(default=False, description="Switch was created during this run")
