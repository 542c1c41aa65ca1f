"""Main CLI implementation using Typer."""

from pathlib import Path
from typing import Any, Callable, List, Optional

import typer
from rich.console import Console

from flotilla.cli.commands import (
    destroy_fleet,
    list_fleet,
    provision_fleet,
    render_instance,
    validate_config,
)
from flotilla.errors import FlotillaError


# Create Typer app
app = typer.Typer(
    name="flotilla",
    help="Flotilla - provision bridged multipass VM fleets from a YAML file",
    add_completion=False,
)

# Console for rich output
console = Console()

ConfigOption = typer.Option(
    None, "--config", "-c", help="Configuration file (default: ./config.yaml or $FLOTILLA_CONFIG)"
)
LogLevelOption = typer.Option(None, "--log-level", "-l", help="Override configured log level")


def _run_cli_command(handler: Callable[..., Any], **kwargs: Any) -> Any:
    """Helper to run a CLI command with error handling."""
    try:
        return handler(**kwargs)
    except FlotillaError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command("up")
def up_command(
    names: Optional[List[str]] = typer.Argument(None, help="Instances to provision (default: all)"),
    config: Optional[Path] = ConfigOption,
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Stop at the first failed instance"),
    log_level: Optional[str] = LogLevelOption,
):
    """Purge and recreate configured instances."""
    run = _run_cli_command(
        provision_fleet, config_path=config, names=names, fail_fast=fail_fast, log_level=log_level
    )
    if not run.ok:
        raise typer.Exit(1)


@app.command("render")
def render_command(
    name: str = typer.Argument(..., help="Instance name"),
    config: Optional[Path] = ConfigOption,
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the document into this directory instead of printing"
    ),
):
    """Show the cloud-init document an instance would be launched with."""
    _run_cli_command(render_instance, config_path=config, name=name, output=output)


@app.command("list")
def list_command():
    """List instances known to multipass."""
    _run_cli_command(list_fleet)


@app.command("destroy")
def destroy_command(
    names: Optional[List[str]] = typer.Argument(None, help="Instances to purge (default: all)"),
    config: Optional[Path] = ConfigOption,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    log_level: Optional[str] = LogLevelOption,
):
    """Permanently delete configured instances."""
    if not force:
        target = ", ".join(names) if names else "all configured instances"
        if not typer.confirm(f"Purge {target}?"):
            raise typer.Abort()
    results = _run_cli_command(destroy_fleet, config_path=config, names=names, log_level=log_level)
    if any(r.error for r in results):
        raise typer.Exit(1)


# Config subcommands
config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")


@config_app.command("validate")
def config_validate_command(config: Optional[Path] = ConfigOption):
    """Validate the configuration file."""
    _run_cli_command(validate_config, config_path=config)


def main():
    """Main entry point for CLI."""
    app()
