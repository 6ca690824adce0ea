"""Subprocess boundary: every command Dockyard runs goes through here."""
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dockyard.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Exit status and captured output of one command."""

    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return f"{self.stdout}\n{self.stderr}".strip()


class CommandRunner:
    """Runs host commands and captures their output.

    Raises FileNotFoundError for a missing executable and
    subprocess.TimeoutExpired when a command overruns; classification of
    those is the executor's job.
    """

    def run(
        self,
        argv: List[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        logger.debug(f"$ {shlex.join(argv)}" + (f"  (cwd={cwd})" if cwd else ""))

        run_env = None
        if env:
            run_env = {**os.environ, **env}

        completed = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=run_env,
        )
        return CommandResult(
            argv=list(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def succeeds(self, argv: List[str], timeout: Optional[float] = None) -> bool:
        """Query helper: True when the command exits zero, False on any failure."""
        try:
            return self.run(argv, timeout=timeout).ok
        except (OSError, subprocess.TimeoutExpired):
            return False


def shell(script: str) -> List[str]:
    """Wrap a shell pipeline as an argv step."""
    return ["bash", "-c", script]
