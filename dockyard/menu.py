"""Interactive menu: show status, read one selection, dispatch, repeat."""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

from dockyard.cli_support import print_error, print_warning, render_result, status_table
from dockyard.core.errors import DockyardError
from dockyard.core.lifecycle import ComponentLifecycle
from dockyard.core.logger import get_logger
from dockyard.models.component import Component, InstallationRequest, RemovalRequest

logger = get_logger(__name__)

QUIT_KEYS = {"q", "quit", "exit"}
YES = {"y", "yes"}


@dataclass
class MenuEntry:
    key: str
    label: str
    action: Callable[[], None]
    style: str = "green"


class MenuController:
    """Single-threaded read-evaluate loop over the lifecycle operations.

    Example:
        menu = MenuController(lifecycle, components, console)
        raise typer.Exit(menu.run())
    """

    def __init__(
        self,
        lifecycle: ComponentLifecycle,
        components: List[Component],
        console: Console,
        prompt: Optional[Callable[[str], str]] = None,
        pause: bool = True,
    ):
        self.lifecycle = lifecycle
        self.components = components
        self.console = console
        self.prompt = prompt or (lambda text: console.input(f"{text}: "))
        self.pause = pause
        self.entries = self._build_entries()

    def _build_entries(self) -> Dict[str, MenuEntry]:
        entries: List[MenuEntry] = [
            MenuEntry("1", "Install/Verify container runtime & compose", self.install_runtime)
        ]
        for component in self.components:
            entries.append(
                MenuEntry(
                    str(len(entries) + 1),
                    f"Install {component.display_name}",
                    lambda c=component: self.install(c),
                )
            )
        if len(self.components) > 1:
            entries.append(
                MenuEntry(
                    str(len(entries) + 1),
                    f"REMOVE ALL ({', '.join(c.display_name for c in self.components)})",
                    self.remove_all,
                    style="red",
                )
            )
        for component in self.components:
            entries.append(
                MenuEntry(
                    str(len(entries) + 1),
                    f"REMOVE {component.display_name}",
                    lambda c=component: self.remove(c),
                    style="red",
                )
            )
        return {entry.key: entry for entry in entries}

    def run(self) -> int:
        """Loop until quit or end of input. Returns the process exit code."""
        while True:
            self.show()
            try:
                choice = self.prompt(f"Enter your choice [1-{len(self.entries)} or q]").strip().lower()
            except (EOFError, KeyboardInterrupt):
                self.console.print("\nExiting.")
                return 0

            if choice in QUIT_KEYS:
                self.console.print("Exiting.")
                return 0
            if not choice:
                continue

            entry = self.entries.get(choice)
            if entry is None:
                print_error(self.console, f"Invalid option '{escape(choice)}'. Please try again.")
                continue

            self.console.rule(entry.label)
            try:
                entry.action()
            except DockyardError as e:
                print_error(self.console, str(e))
            except Exception as e:
                logger.exception(f"{entry.label} failed")
                print_error(self.console, f"{entry.label} failed: {escape(str(e))}")

            if self.pause and not self._wait():
                self.console.print("\nExiting.")
                return 0

    def show(self) -> None:
        self.console.rule("[bold]Docker App Management[/bold]")
        self.console.print(status_table(self.lifecycle, self.components))
        for entry in self.entries.values():
            self.console.print(f" [{entry.style}]{entry.key}.[/{entry.style}] {entry.label}")
        self.console.print(" [yellow]q.[/yellow] Quit")

    def confirm(self, message: str) -> bool:
        """Yes/No question defaulting to No; end of input answers No."""
        try:
            answer = self.prompt(f"{message} (y/N)")
        except (EOFError, KeyboardInterrupt):
            return False
        return answer.strip().lower() in YES

    # Actions

    def install_runtime(self) -> None:
        render_result(self.console, self.lifecycle.install_runtime())

    def install(self, component: Component) -> None:
        render_result(self.console, self.lifecycle.install(InstallationRequest(component)))

    def remove(self, component: Component) -> None:
        request = RemovalRequest.interactive(component, self.confirm)
        render_result(self.console, self.lifecycle.remove(request))

    def remove_all(self) -> None:
        print_warning(self.console, "This will remove ALL components, each asked separately.")
        for component in self.components:
            self.console.print()
            self.remove(component)

    def _wait(self) -> bool:
        try:
            self.prompt("Press Enter to return to the menu")
        except (EOFError, KeyboardInterrupt):
            return False
        return True
