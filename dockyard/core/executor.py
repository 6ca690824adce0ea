"""Attempt executor: run one action once and classify what happened.

The executor never retries; that belongs to ``dockyard.core.retry``.
"""
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from dockyard.core.logger import get_logger
from dockyard.core.outcome import AttemptResult, Outcome
from dockyard.services.host import CommandResult, CommandRunner

logger = get_logger(__name__)

# Retrying can fix these: networks, mirrors and lock holders come back
TRANSIENT_PATTERNS = [
    r"temporary failure",
    r"could not resolve",
    r"connection timed out",
    r"connection refused",
    r"connection reset",
    r"network is unreachable",
    r"tls handshake timeout",
    r"i/o timeout",
    r"could not get lock",
    r"unable to acquire the dpkg",
    r"is another process using it",
    r"has .*change in progress",
    r"\b50[0234]\b",
    r"service unavailable",
    r"too many requests",
    r"toomanyrequests",
    r"failed to fetch",
    r"hash sum mismatch",
]

# Retrying cannot fix these
FATAL_PATTERNS = [
    r"permission denied",
    r"are you root",
    r"operation not permitted",
    r"not supported",
    r"unsupported",
    r"no installation candidate",
    r"unable to locate package",
    r"invalid",
    r"yaml:",
    r"no such file",
]

_transient_re = re.compile("|".join(TRANSIENT_PATTERNS), re.IGNORECASE)
_fatal_re = re.compile("|".join(FATAL_PATTERNS), re.IGNORECASE)


@dataclass
class Action:
    """One externally observable action.

    Attributes:
        name: Label used in logs and failure reports
        steps: Commands run in order; the first failing step ends the attempt
        verify: Probe of the thing the action should have produced, checked
            after the steps exit zero
        cwd: Working directory for every step
        timeout: Per-step timeout in seconds
        env: Extra environment for every step
    """

    name: str
    steps: List[List[str]] = field(default_factory=list)
    verify: Optional[Callable[[], bool]] = None
    cwd: Optional[Path] = None
    timeout: Optional[float] = None
    env: Dict[str, str] = field(default_factory=dict)


def classify(result: CommandResult) -> Outcome:
    """Map a failed command to TRANSIENT or FATAL.

    Missing privilege, platform and configuration problems win over network
    noise in the same output. Anything unrecognised is FATAL so a fallback
    chain moves on instead of retrying an unknown condition.
    """
    if result.ok:
        return Outcome.SUCCESS
    if result.returncode in (126, 127):
        return Outcome.FATAL

    text = result.output
    if _fatal_re.search(text):
        return Outcome.FATAL
    if _transient_re.search(text):
        return Outcome.TRANSIENT
    return Outcome.FATAL


def summarize(result: CommandResult, limit: int = 200) -> str:
    """Last meaningful output line, for failure reports."""
    for line in reversed(result.output.splitlines()):
        line = line.strip()
        if line:
            return line if len(line) <= limit else line[: limit - 3] + "..."
    return f"exit status {result.returncode}"


class AttemptExecutor:
    """Runs an action once and reports Success, TransientFailure or FatalFailure."""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def run(self, action: Action) -> AttemptResult:
        for step in action.steps:
            try:
                result = self.runner.run(
                    step, cwd=action.cwd, timeout=action.timeout, env=action.env or None
                )
            except subprocess.TimeoutExpired:
                return AttemptResult(
                    action.name, Outcome.TRANSIENT,
                    reason=f"{step[0]} timed out after {action.timeout}s",
                )
            except FileNotFoundError:
                return AttemptResult(
                    action.name, Outcome.FATAL, reason=f"{step[0]}: command not found"
                )
            except OSError as e:
                return AttemptResult(action.name, Outcome.FATAL, reason=f"{step[0]}: {e}")

            if not result.ok:
                outcome = classify(result)
                reason = summarize(result)
                logger.debug(f"{action.name}: step {step[0]} failed ({outcome.value}): {reason}")
                return AttemptResult(action.name, outcome, reason=reason, returncode=result.returncode)

        if action.verify is not None and not self._verified(action):
            return AttemptResult(action.name, Outcome.TRANSIENT, reason="verification failed")

        return AttemptResult(action.name, Outcome.SUCCESS, returncode=0)

    @staticmethod
    def _verified(action: Action) -> bool:
        try:
            return bool(action.verify())
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"{action.name}: verification probe raised {e}")
            return False
