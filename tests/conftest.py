"""Shared test fixtures for Dockyard tests."""
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
import yaml

from dockyard.core.config import DockyardConfig
from dockyard.core.lifecycle import ComponentLifecycle
from dockyard.models.component import find_component, load_catalog
from dockyard.services.host import CommandResult, CommandRunner
from dockyard.services.preflight import OsRelease


class FakeHost(CommandRunner):
    """Simulated machine answering the commands Dockyard runs.

    Scripted failures take precedence over the simulation; a failure added
    with ``times=None`` applies forever.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self.docker_installed = False
        self.daemon_up = False
        self.compose_plugin = False
        self.compose_standalone = False
        self.running: Set[str] = set()
        self.projects: Dict[str, Set[str]] = {}
        self.volumes_removed: Set[str] = set()
        self._rules: List[dict] = []

    # Scripting helpers

    def with_runtime(self, plugin: bool = True) -> "FakeHost":
        self.docker_installed = True
        self.daemon_up = True
        self.compose_plugin = plugin
        return self

    def fail(self, prefix: str, stderr: str = "", returncode: int = 1, times: Optional[int] = None):
        self._rules.append({"prefix": prefix, "stderr": stderr, "rc": returncode, "times": times})

    def timeout(self, prefix: str, times: Optional[int] = None):
        self._rules.append({"prefix": prefix, "timeout": True, "times": times})

    def kill(self, workload: str):
        """Workload disappears without going through Dockyard (a crash)."""
        self.running.discard(workload)

    def ran(self, prefix: str) -> List[List[str]]:
        return [argv for argv in self.calls if " ".join(argv).startswith(prefix)]

    # CommandRunner

    def run(self, argv, cwd=None, timeout=None, env=None) -> CommandResult:
        argv = list(argv)
        self.calls.append(argv)
        line = " ".join(argv)

        for rule in self._rules:
            if not line.startswith(rule["prefix"]) or rule["times"] == 0:
                continue
            if rule["times"] is not None:
                rule["times"] -= 1
            if rule.get("timeout"):
                raise subprocess.TimeoutExpired(argv, timeout or 0)
            return CommandResult(argv, rule["rc"], "", rule["stderr"])

        return self._simulate(argv, line)

    def _ok(self, argv, stdout=""):
        return CommandResult(argv, 0, stdout, "")

    def _simulate(self, argv, line) -> CommandResult:
        if argv[0] == "docker":
            if not self.docker_installed:
                raise FileNotFoundError(2, "No such file or directory", "docker")
            return self._docker(argv, line)
        if argv[0] == "docker-compose":
            if not self.compose_standalone:
                raise FileNotFoundError(2, "No such file or directory", "docker-compose")
            return self._compose(argv, argv[1:])

        if line.startswith("apt-get install -y docker-ce"):
            self.docker_installed = True
            self.compose_plugin = True
        elif line.startswith("apt-get install -y docker.io"):
            self.docker_installed = True
        elif line.startswith("apt-get install -y docker-compose-plugin"):
            self.compose_plugin = True
        elif line.startswith("snap install docker"):
            self.docker_installed = True
            self.daemon_up = True
            self.compose_standalone = True
        elif line.startswith("systemctl enable --now docker"):
            if not self.docker_installed:
                return CommandResult(argv, 5, "", "Failed to enable unit: Unit docker.service not found.")
            self.daemon_up = True
        elif argv[0] == "chmod" and argv[-1].endswith("docker-compose"):
            self.compose_standalone = True
        return self._ok(argv)

    def _docker(self, argv, line) -> CommandResult:
        if line == "docker --version":
            return self._ok(argv, "Docker version 24.0.7, build afdd53b")
        if argv[1] == "compose":
            if not self.compose_plugin:
                return CommandResult(argv, 1, "", "docker: 'compose' is not a docker command.")
            return self._compose(argv, argv[2:])
        if not self.daemon_up:
            return CommandResult(
                argv, 1, "",
                "Cannot connect to the Docker daemon at unix:///var/run/docker.sock. "
                "Is the docker daemon running?",
            )
        if argv[1] == "info":
            return self._ok(argv, "Server Version: 24.0.7")
        if argv[1] == "ps":
            return self._ok(argv, "".join(f"{name}\n" for name in sorted(self.running)))
        return self._ok(argv)

    def _compose(self, argv, args) -> CommandResult:
        if args[0] == "version":
            return self._ok(argv, "Docker Compose version v2.24.0")
        if not self.daemon_up:
            return CommandResult(argv, 1, "", "Cannot connect to the Docker daemon")

        project = args[args.index("-p") + 1]
        payload = Path(args[args.index("-f") + 1])
        if "up" in args:
            if not payload.exists():
                return CommandResult(argv, 1, "", f"open {payload}: no such file or directory")
            services = (yaml.safe_load(payload.read_text()) or {}).get("services", {})
            names = {svc.get("container_name", f"{project}-{key}-1") for key, svc in services.items()}
            self.projects[project] = names
            self.running |= names
        elif "down" in args:
            self.running -= self.projects.get(project, set())
            if "-v" in args:
                self.volumes_removed.add(project)
        return self._ok(argv)


@pytest.fixture
def host():
    """Bare host: no runtime installed."""
    return FakeHost()


@pytest.fixture
def config(tmp_path):
    return DockyardConfig(
        base_dir=tmp_path / "apps",
        package_retry_delay=0,
        workload_retry_delay=0,
        lock_file=tmp_path / "run" / "installer.lock",
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def lifecycle(config, host, sleeps):
    return ComponentLifecycle(
        config,
        runner=host,
        os_release=OsRelease(id="ubuntu", version_codename="jammy"),
        sleep=sleeps.append,
    )


@pytest.fixture
def components(config):
    return load_catalog(config)


@pytest.fixture
def proxy(components):
    return find_component(components, "proxy")


@pytest.fixture
def n8n(components):
    return find_component(components, "n8n")


@pytest.fixture
def answers():
    """Factory for confirmation callbacks replaying fixed yes/no answers."""

    def make(*values):
        return _Answers(values)

    return make


class _Answers:
    """Replays fixed answers and records the prompts asked."""

    def __init__(self, values):
        self.queue = list(values)
        self.asked = []

    def __call__(self, message):
        self.asked.append(message)
        return self.queue.pop(0)
