"""Per-instance provisioning lifecycle.

Each instance goes through purge, synthesize, launch and cleanup, strictly in
that order, and instances are processed one at a time in declaration order.
The network attachment is resolved once, before the first instance.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from flotilla.errors import CleanupFailed, LaunchFailed, PurgeFailed
from flotilla.models.config import GlobalConfig
from flotilla.models.fleet import FleetEntry, FleetRun, InstanceResult
from flotilla.models.instance import InstanceSpec
from flotilla.models.network import NetworkAttachment
from flotilla.providers.registry import ProviderRegistry


logger = logging.getLogger(__name__)


class FleetEngine:
    """Drives instances through the provisioning lifecycle."""

    def __init__(self, config: GlobalConfig, provider_registry: ProviderRegistry):
        """Initialize fleet engine."""
        self.config = config
        self.provider_registry = provider_registry
        self.attachment: Optional[NetworkAttachment] = None
        self.last_run: Optional[FleetRun] = None

    @property
    def work_dir(self) -> Path:
        return Path(self.config.work_dir) if self.config.work_dir else Path.cwd()

    async def preflight(self):
        """Check host tooling before any instance is touched."""
        await self.provider_registry.preflight()

    async def resolve_network(self) -> NetworkAttachment:
        """Resolve the shared network attachment, once per run."""
        if self.attachment is None:
            resolver = self.provider_registry.network
            self.attachment = await resolver.resolve(self.config.switch_name)
            logger.info(f"Network attachment: {self.attachment.argument}")
        return self.attachment

    async def purge(self, name: str) -> Optional[str]:
        """Permanently delete any instance with this name.

        Absence is expected on first creation and is not reported. Any other
        failure is logged and returned as a message; it never raises.
        """
        try:
            result = await self.provider_registry.multipass.delete(name, purge=True)
            result.raise_for_outcome(PurgeFailed, missing_ok=True)
        except PurgeFailed as e:
            message = f"Failed to purge instance {e}"
        except Exception as e:
            message = f"Failed to purge instance {name}: {e}"
        else:
            return None
        logger.warning(message)
        return message

    async def provision_instance(
        self,
        instance: InstanceSpec,
        result: Optional[InstanceResult] = None,
    ) -> InstanceResult:
        """Purge, synthesize, launch and clean up one instance.

        Failures are recorded on the returned result. When the run is
        cancelled the rendered file is still removed, the result is marked
        interrupted and the cancellation propagates.
        """
        multipass = self.provider_registry.multipass
        cloudinit = self.provider_registry.cloudinit
        attachment = await self.resolve_network()
        if result is None:
            result = InstanceResult(name=instance.name)

        logger.info(f"Provisioning instance {instance.name}")
        result.purge_error = await self.purge(instance.name)

        try:
            document = cloudinit.render(self.config, instance)
        except Exception as e:
            result.error = f"Failed to render cloud-init for {instance.name}: {e}"
            logger.error(result.error, exc_info=True)
            return result

        path = cloudinit.path_for(document, self.work_dir)
        try:
            try:
                await cloudinit.write(document, self.work_dir)
            except OSError as e:
                result.error = f"Failed to write cloud-init for {instance.name}: {e}"
                logger.error(result.error)
                return result

            await multipass.launch(
                instance.name,
                attachment,
                path,
                memory=self.config.memory,
                timeout=self.config.launch_timeout,
                image=self.config.image,
            )
            result.launched = True
        except LaunchFailed as e:
            result.error = str(e)
            logger.error(result.error)
        except asyncio.CancelledError:
            result.error = f"Launch of {instance.name} interrupted"
            logger.error(result.error)
            raise
        except Exception as e:
            result.error = f"Launch of {instance.name} failed unexpectedly: {e}"
            logger.error(result.error, exc_info=True)
        finally:
            try:
                await cloudinit.remove(path)
            except CleanupFailed as e:
                result.cleanup_error = str(e)
                logger.warning(result.cleanup_error)

        return result

    async def provision_all(self, instances: List[InstanceSpec]) -> FleetRun:
        """Provision instances sequentially in the order given.

        The run being built is kept on ``last_run`` so an interrupted run
        still exposes the results gathered so far.
        """
        start_time = datetime.now()
        await self.resolve_network()

        run = FleetRun()
        self.last_run = run
        for instance in instances:
            result = InstanceResult(name=instance.name)
            run.results.append(result)
            try:
                await self.provision_instance(instance, result)
            except asyncio.CancelledError:
                run.aborted = True
                raise
            if not result.ok and self.config.fail_fast:
                logger.error(f"Stopping after failure of {instance.name} (fail_fast)")
                run.aborted = True
                break

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Provisioned {len(run.results) - len(run.failed)}/{len(instances)} "
            f"instance(s) in {duration:.2f}s"
        )
        return run

    async def purge_all(self, instances: List[InstanceSpec]) -> List[InstanceResult]:
        """Run only the purge phase for each instance."""
        results = []
        for instance in instances:
            error = await self.purge(instance.name)
            results.append(InstanceResult(name=instance.name, purge_error=error, error=error))
        return results

    async def report(self) -> List[FleetEntry]:
        """Current instance listing from the VM manager."""
        return await self.provider_registry.multipass.list()
