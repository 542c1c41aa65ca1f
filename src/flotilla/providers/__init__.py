"""External collaborators and the cloud-init renderer."""

from flotilla.providers.base import BaseProvider, CommandOutcome, OperationResult, ProviderStatus
from flotilla.providers.registry import ProviderRegistry

__all__ = [
    "BaseProvider",
    "CommandOutcome",
    "OperationResult",
    "ProviderStatus",
    "ProviderRegistry",
]
