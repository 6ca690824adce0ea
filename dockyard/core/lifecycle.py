"""Component lifecycle: install, remove and status, each safe to re-run.

State machine per component::

    Absent --install--> Running --remove (confirmed)--> Absent
                                  \\-- data kept --> Present --remove--> Absent

Every operation starts by re-deriving state; none trusts what an earlier
call saw. Failures come back as ``OperationResult`` values so the menu loop
always regains control.
"""
import os
import shutil
import time
from typing import Callable, List, Optional, Union

from dockyard.core.config import DockyardConfig
from dockyard.core.executor import AttemptExecutor
from dockyard.core.fallback import FallbackChain
from dockyard.core.logger import get_logger
from dockyard.core.outcome import OperationResult, ResultKind
from dockyard.core.retry import RetryPolicy
from dockyard.core.state import ComponentStatus, StateTracker
from dockyard.models.component import Component, InstallationRequest, RemovalRequest
from dockyard.services.compose import ComposeService
from dockyard.services.host import CommandRunner
from dockyard.services.preflight import OsRelease
from dockyard.services.runtime import RuntimeService

logger = get_logger(__name__)


class ComponentLifecycle:
    """Install, remove and inspect catalog components."""

    def __init__(
        self,
        config: DockyardConfig,
        runner: Optional[CommandRunner] = None,
        os_release: Optional[OsRelease] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.runner = runner or CommandRunner()
        self.executor = AttemptExecutor(self.runner)
        self.policy = RetryPolicy(self.executor, sleep=sleep)
        self.chain = FallbackChain(self.policy)
        self.state = StateTracker(config, self.runner)
        self.runtime = RuntimeService(config, self.runner, os_release)
        self.compose = ComposeService(config)

    def status(self, component: Component) -> ComponentStatus:
        return self.state.status(component)

    # Runtime

    def install_runtime(self) -> OperationResult:
        """Ensure a container runtime, a compose implementation and the service.

        Returns at once when the runtime binary is already there; only the
        compose check (itself a no-op when compose answers) runs in that case.
        """
        details: List[str] = []

        if self.runtime.binary_present():
            logger.info("Container runtime already installed, skipping")
            compose = self._ensure_compose(details)
            if compose is not None:
                return compose
            return OperationResult(ResultKind.OK, "Container runtime is already installed", details)

        chain = self.chain.resolve("install container runtime", self.runtime.strategies())
        if not chain.ok:
            return OperationResult(
                ResultKind.FAILED,
                "Could not install a container runtime with any method",
                chain.reasons,
            )
        details.append(f"Runtime installed via {chain.strategy}")

        service = self.policy.attempt(
            self.runtime.service_action(),
            max_attempts=self.config.workload_max_attempts,
            delay=self.config.workload_retry_delay,
        )
        if not service.ok:
            # Snap-managed runtimes bring their own service unit
            logger.warning(f"Could not enable the runtime service: {service.reason}")
            details.append(f"Runtime service not enabled: {service.reason}")

        compose = self._ensure_compose(details)
        if compose is not None:
            return compose

        self._add_invoking_user(details)
        return OperationResult(ResultKind.OK, "Container runtime installed", details)

    def _ensure_compose(self, details: List[str]) -> Optional[OperationResult]:
        if self.runtime.compose_available():
            return None

        logger.info("No compose implementation found, installing one")
        chain = self.chain.resolve("install compose", self.runtime.compose_strategies())
        if not chain.ok:
            return OperationResult(
                ResultKind.FAILED,
                "Runtime is present but no compose implementation could be installed",
                details + chain.reasons,
            )
        details.append(f"Compose installed via {chain.strategy}")
        return None

    def _add_invoking_user(self, details: List[str]) -> None:
        user = os.environ.get("SUDO_USER")
        if not user or user == "root":
            return
        result = self.executor.run(self.runtime.group_action(user))
        if result.ok:
            details.append(
                f"Added '{user}' to the 'docker' group. Log out and back in for it to take effect."
            )
        else:
            logger.warning(f"Could not add {user} to the docker group: {result.reason}")

    # Components

    def install(self, request: Union[Component, InstallationRequest]) -> OperationResult:
        component = request.component if isinstance(request, InstallationRequest) else request

        current = self.state.status(component)
        if current is not ComponentStatus.ABSENT:
            logger.warning(f"{component.display_name} is already installed ({current.value})")
            return OperationResult(
                ResultKind.CONFLICT,
                f"{component.display_name} is already installed ({current.value}) "
                f"at {component.install_path}. Remove it first.",
            )

        if not self.runtime.binary_present():
            return OperationResult(
                ResultKind.FAILED,
                "Container runtime is not installed. Install it first.",
            )

        logger.info(f"Installing {component.display_name} into {component.install_path}")
        try:
            self._write_files(component)
        except FileExistsError:
            return OperationResult(
                ResultKind.CONFLICT,
                f"{component.install_path} appeared while installing. Remove it first.",
            )
        except OSError as e:
            self._rollback(component, stop=False)
            return OperationResult(
                ResultKind.FAILED, f"Could not prepare {component.install_path}: {e}"
            )

        chain = self.chain.resolve(
            f"start {component.name}",
            self.compose.up_strategies(
                component,
                verify=lambda: self.state.status(component) is ComponentStatus.RUNNING,
            ),
        )
        if not chain.ok:
            self._rollback(component, stop=True)
            return OperationResult(
                ResultKind.FAILED,
                f"{component.display_name} could not be started; nothing was left installed",
                chain.reasons,
            )

        logger.info(f"✓ {component.display_name} installed and running")
        return OperationResult(
            ResultKind.OK,
            f"{component.display_name} has been installed",
            list(component.notes),
        )

    def _write_files(self, component: Component) -> None:
        component.install_path.mkdir(parents=True)
        for data_path in component.data_paths:
            data_path.mkdir(parents=True, exist_ok=True)
        component.payload_path.write_text(component.payload)
        logger.debug(f"Wrote {component.payload_path}")

    def _rollback(self, component: Component, stop: bool) -> None:
        logger.warning(f"Rolling back partial install of {component.display_name}")
        if stop and component.payload_path.exists():
            self._stop(component, remove_volumes=False)
        shutil.rmtree(component.install_path, ignore_errors=True)

    def remove(self, request: RemovalRequest) -> OperationResult:
        component = request.component

        current = self.state.status(component)
        if current is ComponentStatus.ABSENT:
            logger.info(f"{component.display_name} is not installed, nothing to do")
            return OperationResult(
                ResultKind.NOT_FOUND, f"{component.display_name} is not installed. Nothing to do."
            )

        purge_prompt = f"Also permanently delete {component.display_name} data in {component.install_path}?"
        if self.config.separate_data_confirmation:
            if not request.confirm_remove(f"Remove {component.display_name} ({current.value})?"):
                return OperationResult(ResultKind.CANCELLED, "Removal cancelled.")
            purge = request.confirm_purge(purge_prompt) if component.stateful else True
        else:
            if not request.confirm_remove(
                f"Permanently remove {component.display_name} and all its data?"
            ):
                return OperationResult(ResultKind.CANCELLED, "Removal cancelled.")
            purge = True

        details: List[str] = []
        if not self._stop(component, remove_volumes=purge and component.named_volumes):
            details.append("Workload could not be stopped cleanly; see the log")

        if not purge:
            logger.info(f"{component.display_name} stopped, data kept")
            return OperationResult(
                ResultKind.OK,
                f"{component.display_name} stopped. Data kept in {component.install_path}",
                details,
            )

        try:
            for data_path in component.data_paths:
                if data_path.exists():
                    shutil.rmtree(data_path)
            shutil.rmtree(component.install_path)
        except OSError as e:
            return OperationResult(
                ResultKind.FAILED,
                f"Workload stopped but {component.install_path} could not be deleted: {e}",
                details,
            )

        logger.info(f"✓ {component.display_name} removed")
        return OperationResult(ResultKind.OK, f"{component.display_name} successfully removed", details)

    def _stop(self, component: Component, remove_volumes: bool) -> bool:
        """Best effort: a workload that is already gone is not an error."""
        chain = self.chain.resolve(
            f"stop {component.name}",
            self.compose.down_strategies(
                component,
                remove_volumes=remove_volumes,
                verify=lambda: self.state.status(component) is not ComponentStatus.RUNNING,
            ),
        )
        if not chain.ok:
            logger.warning(f"Could not stop {component.display_name}: {'; '.join(chain.reasons)}")
        return chain.ok
