"""Container runtime provisioning.

Three ways to obtain a working runtime, tried in order by the fallback
chain: the vendor's apt repository, the distribution's own package, and
the snap store. Around them sit the "ensure" steps the runtime needs before
any component can start: the background service, a compose implementation
and docker group membership for the invoking user.
"""
import platform
from typing import List, Optional

from dockyard.core.config import DockyardConfig
from dockyard.core.executor import Action
from dockyard.core.fallback import Strategy
from dockyard.core.logger import get_logger
from dockyard.services.host import CommandRunner, shell
from dockyard.services.preflight import OsRelease

logger = get_logger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
KEYRING = "/etc/apt/keyrings/docker.gpg"
SOURCES_LIST = "/etc/apt/sources.list.d/docker.list"
COMPOSE_BINARY = "/usr/local/bin/docker-compose"
COMPOSE_RELEASE_URL = "https://github.com/docker/compose/releases/latest/download"

VENDOR_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]


class RuntimeService:
    """Builds the runtime strategies and answers runtime queries."""

    def __init__(
        self,
        config: DockyardConfig,
        runner: Optional[CommandRunner] = None,
        os_release: Optional[OsRelease] = None,
    ):
        self.config = config
        self.runner = runner or CommandRunner()
        self.os_release = os_release or OsRelease(id="ubuntu")

    # Queries

    def binary_present(self) -> bool:
        return self.runner.succeeds(["docker", "--version"], timeout=self.config.query_timeout)

    def daemon_running(self) -> bool:
        return self.runner.succeeds(["docker", "info"], timeout=self.config.query_timeout)

    def compose_available(self) -> bool:
        return self.runner.succeeds(
            ["docker", "compose", "version"], timeout=self.config.query_timeout
        ) or self.runner.succeeds(
            ["docker-compose", "version"], timeout=self.config.query_timeout
        )

    # Actions

    def apt_repair(self) -> Action:
        """Remediation between package-index retries."""
        return Action(
            name="repair package database",
            steps=[
                ["dpkg", "--configure", "-a"],
                ["apt-get", "install", "-f", "-y"],
                ["apt-get", "clean"],
            ],
            timeout=self.config.command_timeout,
            env=APT_ENV,
        )

    def _package_action(self, name: str, steps: List[List[str]]) -> Action:
        return Action(
            name=name,
            steps=steps,
            verify=self.binary_present,
            timeout=self.config.command_timeout,
            env=APT_ENV,
        )

    def strategies(self) -> List[Strategy]:
        """Runtime strategies: vendor repository, native package, snap store."""
        distro = self.os_release.vendor_distro
        codename = self.os_release.vendor_codename or "$(. /etc/os-release && echo \"$VERSION_CODENAME\")"
        repo_url = f"https://download.docker.com/linux/{distro}"

        vendor = self._package_action(
            "install runtime from vendor repository",
            [
                ["apt-get", "update"],
                ["apt-get", "install", "-y", "ca-certificates", "curl", "gnupg"],
                ["install", "-m", "0755", "-d", "/etc/apt/keyrings"],
                shell(f"set -o pipefail; curl -fsSL {repo_url}/gpg | gpg --dearmor --yes -o {KEYRING}"),
                ["chmod", "a+r", KEYRING],
                shell(
                    f'echo "deb [arch=$(dpkg --print-architecture) signed-by={KEYRING}] '
                    f'{repo_url} {codename} stable" > {SOURCES_LIST}'
                ),
                ["apt-get", "update"],
                ["apt-get", "install", "-y", *VENDOR_PACKAGES],
            ],
        )
        native = self._package_action(
            "install runtime from distribution package",
            [
                ["apt-get", "update"],
                ["apt-get", "install", "-y", "docker.io"],
            ],
        )
        snap = self._package_action(
            "install runtime from snap store",
            [["snap", "install", "docker"]],
        )

        attempts = self.config.package_max_attempts
        delay = self.config.package_retry_delay
        return [
            Strategy(
                "vendor repository", 1, vendor, attempts, delay,
                remediation=self.apt_repair(),
                cleanup=Action(
                    name="remove vendor repository",
                    steps=[["rm", "-f", SOURCES_LIST, KEYRING]],
                ),
            ),
            Strategy("distribution package", 2, native, attempts, delay, remediation=self.apt_repair()),
            Strategy("snap store", 3, snap, attempts, delay),
        ]

    def compose_strategies(self) -> List[Strategy]:
        """Ways to obtain a compose implementation once the runtime exists."""
        system = platform.system().lower()
        machine = platform.machine()

        plugin = Action(
            name="install compose plugin package",
            steps=[
                ["apt-get", "update"],
                ["apt-get", "install", "-y", "docker-compose-plugin"],
            ],
            verify=self.compose_available,
            timeout=self.config.command_timeout,
            env=APT_ENV,
        )
        standalone = Action(
            name="download standalone compose binary",
            steps=[
                ["curl", "-fsSL", "-o", COMPOSE_BINARY,
                 f"{COMPOSE_RELEASE_URL}/docker-compose-{system}-{machine}"],
                ["chmod", "+x", COMPOSE_BINARY],
            ],
            verify=self.compose_available,
            timeout=self.config.command_timeout,
        )

        attempts = self.config.package_max_attempts
        delay = self.config.package_retry_delay
        return [
            Strategy("compose plugin package", 1, plugin, attempts, delay, remediation=self.apt_repair()),
            Strategy("standalone compose binary", 2, standalone, attempts, delay),
        ]

    def service_action(self) -> Action:
        """Enable and start the runtime's background service."""
        return Action(
            name="enable runtime service",
            steps=[["systemctl", "enable", "--now", "docker"]],
            verify=self.daemon_running,
            timeout=self.config.command_timeout,
        )

    def group_action(self, user: str) -> Action:
        return Action(
            name=f"add {user} to docker group",
            steps=[["usermod", "-aG", "docker", user]],
            timeout=self.config.query_timeout,
        )
