"""Host network resolution.

Guests get LAN-routable addresses through a host bridge. On Windows that is a
Hyper-V external switch, which must exist before multipass can attach to it
and may need to be created interactively. Elsewhere multipass handles the
bridge itself in manual mode, so resolution is a pass-through.
"""

import json
import logging
import subprocess
import sys
from abc import abstractmethod
from typing import Callable, List, Optional

from flotilla.errors import ConfigMalformed, SwitchCreationFailed
from flotilla.models.config import GlobalConfig
from flotilla.models.network import BRIDGED_NETWORK_ARG, NetworkAdapter, NetworkAttachment
from flotilla.providers.base import BaseProvider
from flotilla.utils.process import require_tool, run_command


logger = logging.getLogger(__name__)

AdapterChooser = Callable[[List[NetworkAdapter]], NetworkAdapter]


class NetworkResolver(BaseProvider):
    """Turns a configured switch name into a launch-ready attachment."""

    def __init__(self):
        self.config: Optional[GlobalConfig] = None

    async def initialize(self, config: GlobalConfig):
        """Initialize resolver with configuration."""
        self.config = config

    @abstractmethod
    async def resolve(self, switch_name: str) -> NetworkAttachment:
        """Return the attachment every launch in this run will use."""
        pass


class BridgedNetworkResolver(NetworkResolver):
    """Linux/macOS: multipass bridges in manual mode, no named switch."""

    async def preflight(self) -> None:
        pass

    async def resolve(self, switch_name: str) -> NetworkAttachment:
        logger.debug(f"Using bridged manual networking, ignoring switch {switch_name!r}")
        return NetworkAttachment(kind="bridged", argument=BRIDGED_NETWORK_ARG)


def _ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string."""
    return "'" + value.replace("'", "''") + "'"


class HyperVSwitchResolver(NetworkResolver):
    """Windows: ensure a Hyper-V external switch exists."""

    def __init__(self, chooser: Optional[AdapterChooser] = None, powershell: str = "powershell"):
        super().__init__()
        self.chooser = chooser
        self.powershell = powershell

    async def preflight(self) -> None:
        require_tool(self.powershell)

    async def _ps(self, script: str, check: bool = False):
        return await run_command(
            [self.powershell, "-NoProfile", "-NonInteractive", "-Command", script],
            check=check,
        )

    async def switch_exists(self, name: str) -> bool:
        """Check for a VM switch with this exact name."""
        result = await self._ps(
            f"Get-VMSwitch -Name {_ps_quote(name)} -ErrorAction SilentlyContinue "
            f"| Select-Object -ExpandProperty Name"
        )
        return result.returncode == 0 and name in result.stdout.splitlines()

    async def list_adapters(self) -> List[NetworkAdapter]:
        """Enumerate physical adapters a switch could be bound to."""
        result = await self._ps(
            "Get-NetAdapter -Physical | Select-Object Name, InterfaceDescription, Status "
            "| ConvertTo-Json -Compress"
        )
        if result.returncode != 0:
            raise SwitchCreationFailed(f"Unable to list network adapters: {result.output}")

        text = result.stdout.strip()
        if not text:
            return []
        data = json.loads(text)
        # A single adapter serializes as an object, not a list
        if isinstance(data, dict):
            data = [data]
        return [
            NetworkAdapter(
                name=item.get("Name", ""),
                description=item.get("InterfaceDescription") or "",
                status=str(item.get("Status") or ""),
            )
            for item in data
        ]

    async def create_switch(self, name: str, adapter: NetworkAdapter) -> None:
        """Create an external switch bound to the adapter."""
        logger.info(f"Creating switch {name} on adapter {adapter.name}")
        try:
            await self._ps(
                f"New-VMSwitch -Name {_ps_quote(name)} "
                f"-NetAdapterName {_ps_quote(adapter.name)} -AllowManagementOS $true "
                f"-ErrorAction Stop",
                check=True,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise SwitchCreationFailed(
                f"Failed to create switch {name} on {adapter.name} "
                f"(is Hyper-V enabled?): {detail}"
            ) from e

    async def resolve(self, switch_name: str) -> NetworkAttachment:
        if not switch_name:
            raise ConfigMalformed("windows_switch_name must be set")

        if await self.switch_exists(switch_name):
            logger.info(f"Using existing switch {switch_name}")
            return NetworkAttachment(kind="switch", argument=switch_name, switch_name=switch_name)

        logger.warning(f"Switch {switch_name} not found")
        adapters = await self.list_adapters()
        if not adapters:
            raise SwitchCreationFailed("No physical network adapters available for a new switch")
        if self.chooser is None:
            raise SwitchCreationFailed(
                f"Switch {switch_name} does not exist and no adapter can be chosen non-interactively"
            )

        adapter = self.chooser(adapters)
        await self.create_switch(switch_name, adapter)
        return NetworkAttachment(
            kind="switch", argument=switch_name, switch_name=switch_name, created=True
        )


def get_network_resolver(
    mode: str = "auto",
    platform: Optional[str] = None,
    chooser: Optional[AdapterChooser] = None,
) -> NetworkResolver:
    """Select the resolver variant for this host once, at startup."""
    platform = platform or sys.platform
    if mode == "auto":
        mode = "switch" if platform.startswith(("win32", "cygwin", "msys")) else "bridged"

    if mode == "switch":
        return HyperVSwitchResolver(chooser=chooser)
    if mode == "bridged":
        return BridgedNetworkResolver()
    raise ConfigMalformed(f"Unknown network mode: {mode}")
