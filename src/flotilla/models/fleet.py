"""Run outcome and fleet report models."""

from typing import List, Optional

from pydantic import BaseModel, Field


class FleetEntry(BaseModel):
    """One row of the VM manager's instance listing."""
    name: str
    state: str = ""
    ipv4: List[str] = Field(default_factory=list)
    release: str = ""


class InstanceResult(BaseModel):
    """Outcome of one instance's provisioning lifecycle."""
    name: str
    launched: bool = False
    error: Optional[str] = None
    purge_error: Optional[str] = None
    cleanup_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.launched and self.error is None


class FleetRun(BaseModel):
    """Ordered results of a provisioning run."""
    results: List[InstanceResult] = Field(default_factory=list)
    aborted: bool = False

    @property
    def failed(self) -> List[InstanceResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.failed
