#!/usr/bin/env python3
"""Dockyard CLI - install, remove and inspect containerized services."""
from typing import Optional

import typer
from rich.console import Console

from dockyard.cli_component_commands import register_component_commands
from dockyard.cli_support import build_context, handle_cli_error, setup_file_logging
from dockyard.core.errors import DockyardError
from dockyard.core.lock import installer_lock
from dockyard.core.logger import get_logger, set_verbose
from dockyard.menu import MenuController

app = typer.Typer(
    name="dockyard",
    help="""Dockyard - containerized services on one host

Run without a command for the interactive menu.

Quick start:
  sudo dockyard runtime          # Container runtime + compose
  sudo dockyard install n8n      # Workflow automation
  sudo dockyard install proxy    # Reverse proxy / SSL manager
  dockyard status                # What is installed and running
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Dockyard config file (YAML)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging, including every command run."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file (default: /var/log/dockyard/dockyard.log)."),
) -> None:
    ctx.obj = {"config": config, "verbose": verbose}
    if verbose:
        set_verbose(True)
    setup_file_logging(log_file=log_file, verbose=verbose)

    if ctx.invoked_subcommand is None:
        _run_menu(config, verbose)


@app.command("menu")
def menu_command(ctx: typer.Context) -> None:
    """Interactive menu (the default when no command is given)."""
    settings = ctx.obj or {}
    _run_menu(settings.get("config"), settings.get("verbose", False))


def _run_menu(config: Optional[str], verbose: bool) -> None:
    try:
        cli_ctx = build_context(config)
        with installer_lock(cli_ctx.config.lock_file):
            code = MenuController(cli_ctx.lifecycle, cli_ctx.components, console).run()
    except DockyardError as e:
        handle_cli_error(e, console, verbose=verbose)
    raise typer.Exit(code)


register_component_commands(app, console)

if __name__ == "__main__":
    app()
