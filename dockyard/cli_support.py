"""Shared utilities for Dockyard CLI modules."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from dockyard.core.config import DockyardConfig
from dockyard.core.errors import DockyardError
from dockyard.core.lifecycle import ComponentLifecycle
from dockyard.core.outcome import OperationResult, ResultKind
from dockyard.core.state import ComponentStatus
from dockyard.models.component import Component, load_catalog
from dockyard.services.preflight import OsRelease, read_os_release, run_preflight

STATUS_STYLES = {
    ComponentStatus.ABSENT: "dim",
    ComponentStatus.PRESENT: "yellow",
    ComponentStatus.RUNNING: "green",
}


@dataclass
class CliContext:
    """Everything a command needs, built once per invocation."""

    config: DockyardConfig
    components: List[Component]
    lifecycle: ComponentLifecycle


def preflight_skipped() -> bool:
    """Return True when DOCKYARD_SKIP_PREFLIGHT=1 (development against a scratch base dir)."""
    return os.environ.get("DOCKYARD_SKIP_PREFLIGHT") == "1"


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands."""
    from dockyard.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def build_context(config_path: Optional[str], require_root: bool = True) -> CliContext:
    """Load configuration and catalog, check the host, wire the lifecycle.

    Raises:
        DockyardError: On invalid config/catalog or a failed preflight check
    """
    config = DockyardConfig.load(config_path)
    if preflight_skipped():
        os_release: OsRelease = read_os_release()
    else:
        os_release = run_preflight(require_root=require_root)
    components = load_catalog(config)
    lifecycle = ComponentLifecycle(config, os_release=os_release)
    return CliContext(config=config, components=components, lifecycle=lifecycle)


def confirm_action(message: str, yes_flag: bool = False) -> bool:
    """Prompt user for confirmation unless --yes.

    Returns:
        True if confirmed, False otherwise
    """
    if yes_flag:
        return True
    return typer.confirm(message, default=False)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Print an error consistently and exit."""
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def status_table(
    lifecycle: ComponentLifecycle,
    components: List[Component],
    title: str = "Status",
) -> Table:
    """Runtime row plus one row per component, all read fresh."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Component")
    table.add_column("Status")
    table.add_column("Location", style="dim")

    runtime = lifecycle.state.runtime_status()
    table.add_row("Container runtime", _styled(runtime), "")

    statuses: Dict[str, ComponentStatus] = lifecycle.state.snapshot(components)
    for component in components:
        table.add_row(
            component.display_name,
            _styled(statuses[component.name]),
            str(component.install_path),
        )
    return table


def _styled(status: ComponentStatus) -> str:
    style = STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def render_result(console: Console, result: OperationResult) -> None:
    """Print an operation outcome with its details."""
    if result.kind is ResultKind.OK:
        print_success(console, result.message)
    elif result.kind is ResultKind.NOT_FOUND:
        print_info(console, result.message)
    elif result.kind in (ResultKind.CONFLICT, ResultKind.CANCELLED):
        print_warning(console, result.message)
    else:
        print_error(console, result.message)

    for line in result.details:
        console.print(f"  [dim]•[/dim] {line}")


def exit_code_for(result: OperationResult) -> int:
    return 0 if result.ok else 1


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")
