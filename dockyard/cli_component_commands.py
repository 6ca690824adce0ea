"""Non-interactive component commands: status, runtime, install, remove."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from dockyard.cli_support import (
    build_context,
    confirm_action,
    exit_code_for,
    handle_cli_error,
    render_result,
    status_table,
)
from dockyard.core.errors import DockyardError
from dockyard.core.lock import installer_lock
from dockyard.models.component import InstallationRequest, RemovalRequest, find_component


def register_component_commands(root: typer.Typer, console: Console) -> None:
    """Attach component lifecycle commands to the main CLI."""

    def _context(ctx: typer.Context, require_root: bool = True):
        settings = ctx.obj or {}
        try:
            return build_context(settings.get("config"), require_root=require_root)
        except DockyardError as e:
            handle_cli_error(e, console, verbose=settings.get("verbose", False))

    def _component(cli_ctx, name: str):
        component = find_component(cli_ctx.components, name)
        if component is None:
            known = ", ".join(c.name for c in cli_ctx.components)
            console.print(f"[red]Error:[/red] Unknown component '{name}'. Known: {known}")
            raise typer.Exit(2)
        return component

    def _locked(ctx: typer.Context, cli_ctx, operation):
        try:
            with installer_lock(cli_ctx.config.lock_file):
                return operation()
        except DockyardError as e:
            handle_cli_error(e, console, verbose=(ctx.obj or {}).get("verbose", False))

    @root.command("status")
    def status_command(ctx: typer.Context) -> None:
        """Show the runtime and every component: absent, present or running."""
        cli_ctx = _context(ctx, require_root=False)
        console.print(status_table(cli_ctx.lifecycle, cli_ctx.components))

    @root.command("runtime")
    def runtime_command(ctx: typer.Context) -> None:
        """Install or verify the container runtime and compose."""
        cli_ctx = _context(ctx)
        result = _locked(ctx, cli_ctx, cli_ctx.lifecycle.install_runtime)
        render_result(console, result)
        raise typer.Exit(exit_code_for(result))

    @root.command("install")
    def install_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Component to install (see 'dockyard status')."),
    ) -> None:
        """Install one component. Refuses if it is already installed."""
        cli_ctx = _context(ctx)
        component = _component(cli_ctx, name)
        result = _locked(ctx, cli_ctx, lambda: cli_ctx.lifecycle.install(InstallationRequest(component)))
        render_result(console, result)
        raise typer.Exit(exit_code_for(result))

    @root.command("remove")
    def remove_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Component to remove."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask before removing."),
        purge: Optional[bool] = typer.Option(
            None, "--purge/--keep-data",
            help="Delete or keep persisted data. Asked when omitted (kept with --yes).",
        ),
    ) -> None:
        """Stop a component and optionally delete its data."""
        cli_ctx = _context(ctx)
        component = _component(cli_ctx, name)

        def confirm_purge(message: str) -> bool:
            if purge is not None:
                return purge
            if yes:
                return False
            return confirm_action(message)

        request = RemovalRequest(
            component,
            confirm_remove=lambda message: confirm_action(message, yes_flag=yes),
            confirm_purge=confirm_purge,
        )
        result = _locked(ctx, cli_ctx, lambda: cli_ctx.lifecycle.remove(request))
        render_result(console, result)
        raise typer.Exit(exit_code_for(result))
