"""Command implementations for CLI."""

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import click
import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from flotilla.errors import ReportFailed
from flotilla.fleet.config import ConfigManager
from flotilla.fleet.engine import FleetEngine
from flotilla.models.fleet import FleetEntry, FleetRun, InstanceResult
from flotilla.models.network import NetworkAdapter
from flotilla.providers.cloudinit import CloudInitProvider
from flotilla.providers.multipass import MultipassProvider
from flotilla.providers.registry import ProviderRegistry
from flotilla.utils.logging import setup_logging


console = Console()


def choose_adapter(adapters: List[NetworkAdapter]) -> NetworkAdapter:
    """Ask the operator which physical adapter a new switch should use."""
    table = Table(title="Network adapters")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="dim")
    table.add_column("Status")

    for index, adapter in enumerate(adapters, start=1):
        table.add_row(str(index), adapter.name, adapter.description, adapter.status)

    console.print(table)
    choice = typer.prompt(
        "Select the adapter to bind the switch to",
        type=click.IntRange(1, len(adapters)),
    )
    return adapters[choice - 1]


async def _load(
    config_path: Optional[Path],
    log_level: Optional[str] = None,
) -> Tuple[ConfigManager, FleetEngine]:
    manager = ConfigManager(config_path)
    config, _ = await manager.load()
    setup_logging(log_level or config.log_level)

    registry = ProviderRegistry(chooser=choose_adapter)
    await registry.initialize(config)
    return manager, FleetEngine(config=config, provider_registry=registry)


def print_fleet(entries: List[FleetEntry]):
    """Render the VM manager's instance listing."""
    table = Table(title="Instances")
    table.add_column("Name", style="cyan")
    table.add_column("State")
    table.add_column("IPv4", style="magenta")
    table.add_column("Release", style="dim")

    for entry in entries:
        color = "green" if entry.state.lower() == "running" else "yellow"
        table.add_row(
            entry.name,
            f"[{color}]{entry.state}[/{color}]",
            ", ".join(entry.ipv4),
            entry.release,
        )

    console.print(table)


def print_results(results: List[InstanceResult], title: str = "Provisioning summary"):
    """Render per-instance outcomes."""
    table = Table(title=title)
    table.add_column("Instance", style="cyan")
    table.add_column("Result")
    table.add_column("Details", style="dim")

    for result in results:
        status = "[green]✓[/green]" if result.error is None else "[red]✗[/red]"
        notes = [n for n in (result.error, result.purge_error, result.cleanup_error) if n]
        table.add_row(result.name, status, "\n".join(dict.fromkeys(notes)))

    console.print(table)


def provision_fleet(
    config_path: Optional[Path],
    names: Optional[List[str]] = None,
    fail_fast: bool = False,
    log_level: Optional[str] = None,
) -> FleetRun:
    """Provision configured instances and show the resulting fleet."""

    async def _run() -> Tuple[FleetRun, FleetEngine]:
        manager, engine = await _load(config_path, log_level)
        if fail_fast:
            engine.config = engine.config.model_copy(update={"fail_fast": True})
        instances = manager.select(names)

        await engine.preflight()
        await engine.resolve_network()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Provisioning {len(instances)} instance(s)", total=None)
            run = await engine.provision_all(instances)

        return run, engine

    run, engine = asyncio.run(_run())
    print_results(run.results)
    if run.aborted:
        console.print("[yellow]Run stopped early after a failure[/yellow]")

    try:
        print_fleet(asyncio.run(engine.report()))
    except ReportFailed as e:
        console.print(f"[red]Error:[/red] Could not list instances: {e}")
    return run


def render_instance(config_path: Optional[Path], name: str, output: Optional[Path] = None):
    """Print or write one instance's cloud-init document without launching it."""

    async def _run():
        manager = ConfigManager(config_path)
        config, _ = await manager.load()
        instance = manager.select([name])[0]
        provider = CloudInitProvider()
        await provider.initialize(config)
        document = provider.render(config, instance)
        if output is None:
            return document, None
        output.mkdir(parents=True, exist_ok=True)
        return document, await provider.write(document, output)

    document, path = asyncio.run(_run())
    if path is None:
        typer.echo(document.content, nl=False)
    else:
        console.print(f"[green]✓[/green] Wrote {path}")


def list_fleet():
    """Show the VM manager's current instances."""

    async def _run():
        provider = MultipassProvider()
        await provider.preflight()
        return await provider.list()

    print_fleet(asyncio.run(_run()))


def destroy_fleet(
    config_path: Optional[Path],
    names: Optional[List[str]] = None,
    log_level: Optional[str] = None,
) -> List[InstanceResult]:
    """Purge configured instances."""

    async def _run():
        manager, engine = await _load(config_path, log_level)
        await engine.provider_registry.multipass.preflight()
        return await engine.purge_all(manager.select(names))

    results = asyncio.run(_run())
    print_results(results, title="Purge summary")
    return results


def validate_config(config_path: Optional[Path]):
    """Load the configuration and show what would be provisioned."""

    async def _run():
        manager = ConfigManager(config_path)
        return await manager.load()

    config, instances = asyncio.run(_run())

    table = Table(title="Instances")
    table.add_column("Name", style="cyan")
    table.add_column("IP", style="magenta")
    table.add_column("Gateway")
    table.add_column("DNS")
    for instance in instances:
        table.add_row(instance.name, instance.ip, instance.gateway, ", ".join(instance.dns))
    console.print(table)

    variant = "embedded keys" if config.secrets else f"ssh_import_id gh:{config.identity}"
    console.print(f"Switch: {config.switch_name}  Identity: {variant}")
    console.print("[green]✓[/green] Configuration is valid")
