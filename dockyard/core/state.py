"""Component state, derived fresh from the filesystem and the process table.

Nothing here is cached between calls: the install directory is the only
durable install marker and the runtime's container list is the only source
for whether a workload runs.
"""
import subprocess
from enum import Enum
from typing import Dict, Iterable, Optional, Set

from dockyard.core.config import DockyardConfig
from dockyard.core.logger import get_logger
from dockyard.models.component import Component
from dockyard.services.host import CommandRunner

logger = get_logger(__name__)


class ComponentStatus(str, Enum):
    ABSENT = "absent"
    PRESENT = "present"
    RUNNING = "running"


class StateTracker:
    """Answers Absent / Present / Running without side effects."""

    def __init__(self, config: DockyardConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or CommandRunner()

    def running_workloads(self) -> Set[str]:
        """Names of running containers; empty when the runtime cannot be asked."""
        try:
            result = self.runner.run(
                ["docker", "ps", "--filter", "status=running", "--format", "{{.Names}}"],
                timeout=self.config.query_timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Cannot query running workloads: {e}")
            return set()

        if not result.ok:
            logger.debug(f"Cannot query running workloads: {result.output}")
            return set()
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def status(self, component: Component) -> ComponentStatus:
        if not component.install_path.exists():
            return ComponentStatus.ABSENT
        return self._classify(component, self.running_workloads())

    def snapshot(self, components: Iterable[Component]) -> Dict[str, ComponentStatus]:
        """Status of several components from a single workload query."""
        components = list(components)
        running = None
        statuses = {}
        for component in components:
            if not component.install_path.exists():
                statuses[component.name] = ComponentStatus.ABSENT
                continue
            if running is None:
                running = self.running_workloads()
            statuses[component.name] = self._classify(component, running)
        return statuses

    def runtime_status(self) -> ComponentStatus:
        """Absent without a runtime binary, Running when its daemon answers."""
        if not self.runner.succeeds(["docker", "--version"], timeout=self.config.query_timeout):
            return ComponentStatus.ABSENT
        if self.runner.succeeds(["docker", "info"], timeout=self.config.query_timeout):
            return ComponentStatus.RUNNING
        return ComponentStatus.PRESENT

    @staticmethod
    def _classify(component: Component, running: Set[str]) -> ComponentStatus:
        if any(name in running for name in component.workload_names):
            return ComponentStatus.RUNNING
        return ComponentStatus.PRESENT
