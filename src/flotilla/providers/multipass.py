"""Multipass provider: the VM manager every instance is launched through."""

import json
import logging
import re
import subprocess
from pathlib import Path
from typing import List, Optional

from flotilla.errors import LaunchFailed, ReportFailed
from flotilla.models.config import GlobalConfig
from flotilla.models.fleet import FleetEntry
from flotilla.models.network import NetworkAttachment
from flotilla.providers.base import BaseProvider, CommandOutcome, OperationResult, ProviderStatus
from flotilla.utils.process import require_tool, run_command


logger = logging.getLogger(__name__)

NOT_FOUND_PATTERN = re.compile(r"does not exist", re.IGNORECASE)

# Extra time granted to the subprocess beyond multipass's own --timeout
LAUNCH_GRACE_SECONDS = 60


class MultipassProvider(BaseProvider):
    """Wraps the multipass CLI."""

    def __init__(self, executable: str = "multipass"):
        """Initialize multipass provider."""
        self.executable = executable
        self.config: Optional[GlobalConfig] = None

    async def initialize(self, config: GlobalConfig):
        """Initialize provider with configuration."""
        self.config = config

    async def preflight(self) -> None:
        """Fail early when multipass is not installed."""
        require_tool(self.executable)

    async def status(self, name: str) -> ProviderStatus:
        """Check whether an instance exists."""
        try:
            result = await run_command(
                [self.executable, "info", name, "--format", "json"],
                check=False
            )
        except Exception as e:
            logger.error(f"Error checking instance {name}: {e}")
            return ProviderStatus.ERROR

        if result.returncode == 0:
            return ProviderStatus.PRESENT
        if NOT_FOUND_PATTERN.search(result.output):
            return ProviderStatus.ABSENT
        logger.warning(f"Unexpected multipass info output for {name}: {result.output}")
        return ProviderStatus.UNKNOWN

    async def delete(self, name: str, purge: bool = True) -> OperationResult:
        """Delete an instance, reporting absence as NOT_FOUND rather than failing."""
        cmd = [self.executable, "delete", name]
        if purge:
            cmd.append("--purge")

        result = await run_command(cmd, check=False)

        if result.returncode == 0:
            logger.info(f"Deleted instance {name}")
            return OperationResult(CommandOutcome.OK, name)
        if NOT_FOUND_PATTERN.search(result.output):
            logger.debug(f"Instance {name} does not exist, nothing to delete")
            return OperationResult(CommandOutcome.NOT_FOUND, name, result.output)
        return OperationResult(CommandOutcome.FAILED, name, result.output)

    async def launch(
        self,
        name: str,
        network: NetworkAttachment,
        cloud_init_path: Path,
        memory: Optional[str] = None,
        timeout: Optional[int] = None,
        image: Optional[str] = None,
    ) -> None:
        """Launch an instance with the given cloud-init document."""
        memory = memory or (self.config.memory if self.config else "1G")
        timeout = timeout or (self.config.launch_timeout if self.config else 600)
        if image is None and self.config:
            image = self.config.image

        cmd = [self.executable, "launch"]
        if image:
            cmd.append(image)
        cmd.extend([
            "--name", name,
            "--memory", memory,
            "--network", network.argument,
            "--cloud-init", str(cloud_init_path),
            "--timeout", str(timeout),
        ])

        logger.info(f"Launching instance {name} (timeout {timeout}s)")
        try:
            await run_command(cmd, timeout=timeout + LAUNCH_GRACE_SECONDS)
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise LaunchFailed(f"Launch of {name} failed (exit {e.returncode}): {detail}") from e
        except subprocess.TimeoutExpired as e:
            raise LaunchFailed(f"Launch of {name} timed out after {timeout}s") from e
        logger.info(f"Launched instance {name}")

    async def list(self) -> List[FleetEntry]:
        """List instances known to multipass."""
        try:
            result = await run_command([self.executable, "list", "--format", "json"])
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise ReportFailed(f"multipass list failed (exit {e.returncode}): {detail}") from e

        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ReportFailed(f"Unparseable multipass list output: {e}") from e

        return [
            FleetEntry(
                name=item.get("name", ""),
                state=item.get("state", ""),
                ipv4=item.get("ipv4") or [],
                release=item.get("release", ""),
            )
            for item in data.get("list", [])
        ]
