"""Base provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Type

from flotilla.errors import FlotillaError
from flotilla.models.config import GlobalConfig


class ProviderStatus(Enum):
    """Provider resource status."""
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"
    ERROR = "error"


class CommandOutcome(Enum):
    """Outcome of a mutating call against an external collaborator."""
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class OperationResult:
    """Explicit result of an operation the caller may choose to tolerate."""
    outcome: CommandOutcome
    target: str
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is CommandOutcome.OK

    def raise_for_outcome(self, error_cls: Type[FlotillaError], missing_ok: bool = False) -> None:
        """Raise error_cls unless the operation succeeded.

        A NOT_FOUND outcome is accepted when missing_ok is set.
        """
        if self.outcome is CommandOutcome.OK:
            return
        if self.outcome is CommandOutcome.NOT_FOUND and missing_ok:
            return
        raise error_cls(f"{self.target}: {self.message or self.outcome.value}")


class BaseProvider(ABC):
    """Base provider interface that all providers must implement."""

    @abstractmethod
    async def initialize(self, config: GlobalConfig):
        """Initialize the provider with configuration."""
        pass

    @abstractmethod
    async def preflight(self) -> None:
        """Verify host tooling the provider depends on is available."""
        pass
