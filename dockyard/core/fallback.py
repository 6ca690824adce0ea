"""Fallback chain: try alternative strategies for one goal, in order."""
from dataclasses import dataclass
from typing import Callable, List, Optional

from dockyard.core.executor import Action
from dockyard.core.logger import get_logger
from dockyard.core.outcome import ChainResult, Outcome, StrategyFailure
from dockyard.core.retry import RetryPolicy

logger = get_logger(__name__)


@dataclass
class Strategy:
    """One method of reaching a goal.

    Attributes:
        name: Human readable method, e.g. "vendor repository"
        order: Priority; lower is tried first
        action: Side-effecting action, carrying its own verify probe
        max_attempts: Tries granted by the retry policy
        delay: Seconds between tries
        remediation: Corrective action between transient failures
        cleanup: Undo for partial changes, run once the strategy has failed
    """

    name: str
    order: int
    action: Action
    max_attempts: int = 1
    delay: float = 0.0
    remediation: Optional[Action] = None
    cleanup: Optional[Action] = None

    @property
    def verify(self) -> Optional[Callable[[], bool]]:
        return self.action.verify


class FallbackChain:
    """Resolve a goal by trying each strategy until one succeeds.

    A strategy that fails, transiently or fatally, only ends that method;
    the goal fails only when every strategy has.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None):
        self.policy = policy or RetryPolicy()

    def resolve(self, goal: str, strategies: List[Strategy]) -> ChainResult:
        failures: List[StrategyFailure] = []
        ordered = sorted(strategies, key=lambda s: s.order)

        for index, strategy in enumerate(ordered, start=1):
            logger.info(f"{goal}: trying {strategy.name} ({index}/{len(ordered)})")
            result = self.policy.attempt(
                strategy.action,
                max_attempts=strategy.max_attempts,
                delay=strategy.delay,
                remediation=strategy.remediation,
            )
            if result.ok:
                logger.info(f"✓ {goal} via {strategy.name}")
                return ChainResult(goal, Outcome.SUCCESS, strategy=strategy.name, failures=failures)

            failures.append(StrategyFailure(strategy.name, result))
            if strategy.cleanup is not None:
                self._cleanup(strategy)
            if index < len(ordered):
                logger.warning(f"{goal}: {strategy.name} failed, falling back")

        logger.error(f"✗ {goal}: all {len(ordered)} strategies failed")
        for failure in failures:
            logger.error(f"  {failure.strategy}: {failure.result.describe()}")
        return ChainResult(goal, Outcome.FATAL, failures=failures)

    def _cleanup(self, strategy: Strategy) -> None:
        undo = self.policy.executor.run(strategy.cleanup)
        if not undo.ok:
            logger.warning(f"Cleanup after {strategy.name} failed: {undo.reason}")
