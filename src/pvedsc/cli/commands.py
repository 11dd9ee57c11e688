"""Command implementations for CLI."""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from pvedsc.agent.config import ConfigManager
from pvedsc.agent.gate import DryRunGate
from pvedsc.agent.main import PvedscAgent
from pvedsc.engine.context import EXIT_MANIFEST_INVALID, RunContext
from pvedsc.engine.coordinator import RunCoordinator
from pvedsc.errors import ManifestError
from pvedsc.models.resource import AuditFinding
from pvedsc.utils.commands import Runner


console = Console()
stderr_console = Console(stderr=True)


def write_adoption_file(path: Path, findings: List[AuditFinding]):
    """Write the suggested entries for every foreign workload as a JSON array."""
    entries = [finding.suggestion.to_manifest() for finding in findings]
    Path(path).write_text(json.dumps(entries, indent=2) + "\n")


def print_run_summary(ctx: RunContext):
    table = Table(title="Dry run" if ctx.dry_run else "Reconciliation")
    table.add_column("Declared", justify="right")
    table.add_column("Drift actions", justify="right")
    table.add_column("Unmanaged", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Result")

    result = "[green]completed[/green]" if ctx.completed else f"[red]{ctx.state.value}[/red]"
    table.add_row(
        str(len(ctx.declared_ids)),
        str(len(ctx.actions)),
        str(len(ctx.findings)),
        str(len(ctx.errors)),
        result,
    )
    stderr_console.print(table)


def run_reconciliation(
    config_manager: ConfigManager,
    dry_run: bool = False,
    adopt_file: Optional[Path] = None,
    runner: Optional[Runner] = None,
) -> int:
    """Run one reconciliation and return its exit code."""
    coordinator = RunCoordinator(config_manager, dry_run=dry_run, runner=runner)
    ctx = asyncio.run(coordinator.run())

    if adopt_file and ctx.completed:
        write_adoption_file(adopt_file, ctx.findings)
        stderr_console.print(f"Wrote {len(ctx.findings)} suggested entries to {adopt_file}")

    print_run_summary(ctx)
    return ctx.exit_code


def run_gate(config_manager: ConfigManager) -> int:
    """Dry run, then deploy only if the dry run was clean."""
    return asyncio.run(DryRunGate(config_manager).run())


def run_agent(config_manager: ConfigManager) -> int:
    asyncio.run(PvedscAgent(config_manager).run())
    return 0


def validate_manifest(config_manager: ConfigManager) -> int:
    """Parse the manifest and show what a run would act on."""
    try:
        manifest = config_manager.load_manifest()
    except ManifestError as e:
        console.print(f"[red]✗[/red] {e}")
        return EXIT_MANIFEST_INVALID

    table = Table(title=f"Manifest {config_manager.manifest_path}")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Hostname")
    table.add_column("Template", style="dim", max_width=40)
    table.add_column("Memory", justify="right")
    table.add_column("Cores", justify="right")
    table.add_column("Storage")
    table.add_column("State")

    for entry in manifest.entries:
        state_color = "green" if entry.state == "running" else "yellow"
        table.add_row(
            str(entry.id),
            entry.type,
            entry.hostname,
            entry.template or "[red]-[/red]",
            str(entry.memory),
            str(entry.cores),
            str(entry.storage) if entry.storage else "-",
            f"[{state_color}]{entry.state}[/{state_color}]",
        )
    console.print(table)

    if not manifest.rejected:
        console.print(f"[green]✓[/green] {len(manifest.entries)} entries valid")
        return 0

    rejected = Table(title="Rejected entries")
    rejected.add_column("#", justify="right")
    rejected.add_column("ID", justify="right", style="cyan")
    rejected.add_column("Reason", style="red")
    for item in manifest.rejected:
        rejected.add_row(str(item.index), str(item.id) if item.id else "-", item.reason)
    console.print(rejected)
    console.print(f"[red]✗[/red] {len(manifest.rejected)} entries rejected")
    return 1
