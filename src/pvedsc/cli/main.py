"""Main CLI implementation using Typer."""

from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console

from pvedsc.agent.config import ConfigError, ConfigManager
from pvedsc.cli.commands import (
    run_agent,
    run_gate,
    run_reconciliation,
    validate_manifest,
)
from pvedsc.utils.logging import setup_logging


app = typer.Typer(
    name="pvedsc",
    help="Desired-state reconciliation for Proxmox containers and virtual machines",
    add_completion=False,
)

console = Console(stderr=True)


def _load(config: Optional[Path], manifest: Optional[Path], logs: bool = True) -> ConfigManager:
    """Load configuration and set up logging, exiting on a bad config file."""
    config_manager = ConfigManager(config_path=config, manifest_path=manifest)
    try:
        settings = config_manager.load()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    if logs:
        setup_logging(settings.logging.level, settings.logging.file)
    return config_manager


def _exit_with(handler: Callable[..., int], *args, **kwargs):
    code = handler(*args, **kwargs)
    raise typer.Exit(code)


@app.command("run")
def run_command(
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest JSON file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log mutating commands without running them"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: $PVEDSC_CONFIG or /etc/pvedsc/config.yaml)"
    ),
    adopt_file: Optional[Path] = typer.Option(
        None, "--adopt-file", help="Write suggested entries for foreign workloads to this file"
    ),
):
    """Reconcile the host against the manifest once."""
    config_manager = _load(config, manifest)
    _exit_with(run_reconciliation, config_manager, dry_run=dry_run, adopt_file=adopt_file)


@app.command("gate")
def gate_command(
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest JSON file"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: $PVEDSC_CONFIG or /etc/pvedsc/config.yaml)"
    ),
):
    """Dry run first; deploy only when it is clean."""
    config_manager = _load(config, manifest)
    _exit_with(run_gate, config_manager)


@app.command("validate")
def validate_command(
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest JSON file"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: $PVEDSC_CONFIG or /etc/pvedsc/config.yaml)"
    ),
):
    """Validate the manifest without touching the host."""
    config_manager = _load(config, manifest, logs=False)
    _exit_with(validate_manifest, config_manager)


@app.command("agent")
def agent_command(
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest JSON file"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: $PVEDSC_CONFIG or /etc/pvedsc/config.yaml)"
    ),
):
    """Run gated reconciliation on an interval and on manifest changes."""
    config_manager = _load(config, manifest)
    _exit_with(run_agent, config_manager)


def main():
    """Main entry point for CLI."""
    app()
