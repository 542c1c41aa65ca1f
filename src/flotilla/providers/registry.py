"""Provider registry for managing collaborators."""

import logging
from typing import Dict, Optional

from flotilla.models.config import GlobalConfig
from flotilla.providers.base import BaseProvider
from flotilla.providers.cloudinit import CloudInitProvider
from flotilla.providers.multipass import MultipassProvider
from flotilla.providers.network import AdapterChooser, NetworkResolver, get_network_resolver


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry for managing providers."""

    def __init__(
        self,
        network_resolver: Optional[NetworkResolver] = None,
        chooser: Optional[AdapterChooser] = None,
    ):
        """Initialize provider registry."""
        self._providers: Dict[str, BaseProvider] = {}
        self._network_resolver = network_resolver
        self._chooser = chooser

    async def initialize(self, config: GlobalConfig):
        """Instantiate and initialize all providers."""
        self._providers = {
            "multipass": MultipassProvider(),
            "cloudinit": CloudInitProvider(),
            "network": self._network_resolver or get_network_resolver(
                config.network_mode, chooser=self._chooser
            ),
        }

        for name, provider in self._providers.items():
            try:
                await provider.initialize(config)
                logger.debug(f"Initialized provider: {name}")
            except Exception as e:
                logger.error(f"Failed to initialize provider {name}: {e}")
                raise

    async def preflight(self):
        """Run every provider's tooling check."""
        for provider in self._providers.values():
            await provider.preflight()

    def get_provider(self, name: str) -> Optional[BaseProvider]:
        """Get a provider by name."""
        return self._providers.get(name)

    def list_providers(self) -> list[str]:
        """List available provider names."""
        return list(self._providers.keys())

    @property
    def multipass(self) -> MultipassProvider:
        return self._providers["multipass"]

    @property
    def cloudinit(self) -> CloudInitProvider:
        return self._providers["cloudinit"]

    @property
    def network(self) -> NetworkResolver:
        return self._providers["network"]
