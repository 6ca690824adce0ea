"""
Compose invocations for component workloads.

Hosts carry either the compose plugin (``docker compose``) or the older
standalone binary (``docker-compose``), sometimes both. Every workload
operation is therefore expressed as strategies over both front ends and
resolved by the fallback chain.

Each component is its own compose project named after the component, with
the payload file in its install directory.
"""
from typing import Callable, List, Optional

from dockyard.core.config import DockyardConfig
from dockyard.core.executor import Action
from dockyard.core.fallback import Strategy
from dockyard.models.component import Component

FRONT_ENDS = [
    ("compose plugin", ["docker", "compose"]),
    ("standalone docker-compose", ["docker-compose"]),
]


class ComposeService:
    """Builds compose strategies for one configuration."""

    def __init__(self, config: DockyardConfig):
        self.config = config

    def _base(self, prefix: List[str], component: Component) -> List[str]:
        return [*prefix, "-p", component.name, "-f", str(component.payload_path)]

    def up_strategies(self, component: Component, verify: Callable[[], bool]) -> List[Strategy]:
        """Bring the workload up, verified by the workload actually running.

        A transient failure (usually an image pull) is followed by tearing
        down whatever was half-created before the next try.
        """
        strategies = []
        for order, (label, prefix) in enumerate(FRONT_ENDS, start=1):
            up = Action(
                name=f"start {component.name} ({label})",
                steps=[[*self._base(prefix, component), "up", "-d"]],
                verify=verify,
                cwd=component.install_path,
                timeout=self.config.command_timeout,
            )
            tidy = Action(
                name=f"tidy {component.name} ({label})",
                steps=[[*self._base(prefix, component), "down", "--remove-orphans"]],
                cwd=component.install_path,
                timeout=self.config.command_timeout,
            )
            strategies.append(
                Strategy(
                    label, order, up,
                    max_attempts=self.config.workload_max_attempts,
                    delay=self.config.workload_retry_delay,
                    remediation=tidy,
                )
            )
        return strategies

    def down_strategies(
        self,
        component: Component,
        remove_volumes: bool = False,
        verify: Optional[Callable[[], bool]] = None,
    ) -> List[Strategy]:
        """Stop and remove the workload; ``remove_volumes`` also drops named volumes."""
        strategies = []
        for order, (label, prefix) in enumerate(FRONT_ENDS, start=1):
            argv = [*self._base(prefix, component), "down", "--remove-orphans"]
            if remove_volumes:
                argv.append("-v")
            down = Action(
                name=f"stop {component.name} ({label})",
                steps=[argv],
                verify=verify,
                cwd=component.install_path if component.install_path.exists() else None,
                timeout=self.config.command_timeout,
            )
            strategies.append(
                Strategy(
                    label, order, down,
                    max_attempts=self.config.workload_max_attempts,
                    delay=self.config.workload_retry_delay,
                )
            )
        return strategies
