"""Result values passed between executor, retry policy, chain and lifecycle."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Outcome(str, Enum):
    """Classification of one attempt."""

    SUCCESS = "success"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass
class AttemptResult:
    """What happened when an action ran (possibly several times)."""

    action: str
    outcome: Outcome
    reason: str = ""
    returncode: Optional[int] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def describe(self) -> str:
        tries = "1 attempt" if self.attempts == 1 else f"{self.attempts} attempts"
        return f"{self.action}: {self.outcome.value} after {tries} ({self.reason or 'no detail'})"


@dataclass
class StrategyFailure:
    """A strategy that did not reach the goal."""

    strategy: str
    result: AttemptResult


@dataclass
class ChainResult:
    """Overall result of a fallback chain."""

    goal: str
    outcome: Outcome
    strategy: Optional[str] = None
    failures: List[StrategyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def reasons(self) -> List[str]:
        return [f"{f.strategy} -> {f.result.describe()}" for f in self.failures]


class ResultKind(str, Enum):
    """Operator-facing result of a lifecycle operation."""

    OK = "ok"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class OperationResult:
    """Returned by every lifecycle operation; never raised."""

    kind: ResultKind
    message: str
    details: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        # NOT_FOUND on remove is the idempotent no-op, not an error
        return self.kind in (ResultKind.OK, ResultKind.NOT_FOUND)
