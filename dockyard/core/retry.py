"""Bounded retry around the attempt executor, with remediation between tries."""
import time
from typing import Callable, Optional

from dockyard.core.executor import Action, AttemptExecutor
from dockyard.core.logger import get_logger
from dockyard.core.outcome import AttemptResult, Outcome

logger = get_logger(__name__)


class RetryPolicy:
    """Retry transient failures a fixed number of times with a fixed delay.

    A fatal failure aborts immediately, without remediation or delay.

    Example:
        policy = RetryPolicy(AttemptExecutor())
        result = policy.attempt(
            install_action, max_attempts=3, delay=5, remediation=repair_apt
        )
    """

    def __init__(
        self,
        executor: Optional[AttemptExecutor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.executor = executor or AttemptExecutor()
        self.sleep = sleep

    def attempt(
        self,
        action: Action,
        max_attempts: int = 3,
        delay: float = 2.0,
        remediation: Optional[Action] = None,
    ) -> AttemptResult:
        """Run ``action`` until it succeeds, fails fatally or runs out of tries.

        Args:
            action: Action to run
            max_attempts: Maximum number of tries (at least 1)
            delay: Seconds to wait between tries
            remediation: Corrective action run after a transient failure,
                before the next try

        Returns:
            The first success, the fatal failure, or the last transient failure,
            with ``attempts`` set to the number of tries made
        """
        max_attempts = max(1, max_attempts)

        for attempt in range(1, max_attempts + 1):
            result = self.executor.run(action)
            result.attempts = attempt

            if result.outcome is Outcome.SUCCESS:
                if attempt > 1:
                    logger.info(f"{action.name} succeeded on attempt {attempt}/{max_attempts}")
                return result

            if result.outcome is Outcome.FATAL:
                logger.error(f"{action.name} failed fatally: {result.reason}")
                return result

            if attempt == max_attempts:
                logger.error(
                    f"{action.name} failed after {max_attempts} attempts: {result.reason}"
                )
                return result

            logger.warning(
                f"{action.name} failed (attempt {attempt}/{max_attempts}): {result.reason}"
            )
            if remediation is not None:
                self._remediate(action, remediation)
            logger.info(f"Retrying in {delay:.1f}s...")
            self.sleep(delay)

        return result

    def _remediate(self, action: Action, remediation: Action) -> None:
        logger.info(f"Running remediation for {action.name}: {remediation.name}")
        fix = self.executor.run(remediation)
        if not fix.ok:
            logger.warning(f"Remediation {remediation.name} did not succeed: {fix.reason}")
