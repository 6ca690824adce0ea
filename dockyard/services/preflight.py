"""Startup checks: privilege and platform."""
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dockyard.core.errors import PreflightError
from dockyard.core.logger import get_logger

logger = get_logger(__name__)

OS_RELEASE = Path("/etc/os-release")
APT_FAMILIES = ("debian", "ubuntu")


@dataclass
class OsRelease:
    """The fields of /etc/os-release Dockyard cares about."""

    id: str = ""
    id_like: List[str] = field(default_factory=list)
    version_codename: str = ""
    ubuntu_codename: str = ""
    pretty_name: str = ""

    @property
    def families(self) -> List[str]:
        return [self.id, *self.id_like]

    @property
    def apt_based(self) -> bool:
        return any(f in APT_FAMILIES for f in self.families)

    @property
    def vendor_distro(self) -> str:
        """Distribution path used by the vendor package repository."""
        if self.id in APT_FAMILIES:
            return self.id
        return "ubuntu" if "ubuntu" in self.id_like else "debian"

    @property
    def vendor_codename(self) -> str:
        if self.vendor_distro == "ubuntu" and self.ubuntu_codename:
            return self.ubuntu_codename
        return self.version_codename


def read_os_release(path: Path = OS_RELEASE) -> OsRelease:
    """Parse an os-release file; missing file yields an empty record."""
    values = {}
    try:
        text = path.read_text()
    except OSError:
        logger.debug(f"{path} not readable")
        return OsRelease()

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        values[key] = value.strip().strip('"\'')

    return OsRelease(
        id=values.get('ID', '').lower(),
        id_like=values.get('ID_LIKE', '').lower().split(),
        version_codename=values.get('VERSION_CODENAME', ''),
        ubuntu_codename=values.get('UBUNTU_CODENAME', ''),
        pretty_name=values.get('PRETTY_NAME', ''),
    )


def check_privilege() -> None:
    """Raise PreflightError unless running as root."""
    if os.geteuid() != 0:
        raise PreflightError(
            "This installer requires root privileges.\n"
            "Run it again with sudo, e.g. 'sudo dockyard'."
        )


def check_platform(os_release_path: Path = OS_RELEASE) -> OsRelease:
    """Raise PreflightError unless on an apt-based Linux distribution."""
    if platform.system() != "Linux":
        raise PreflightError(f"Unsupported platform: {platform.system()} (Linux required)")

    release = read_os_release(os_release_path)
    if not release.apt_based:
        name = release.pretty_name or release.id or "unknown distribution"
        raise PreflightError(f"Unsupported distribution: {name} (Debian or Ubuntu required)")

    logger.debug(f"Platform: {release.pretty_name or release.id}")
    return release


def run_preflight(require_root: bool = True, os_release_path: Optional[Path] = None) -> OsRelease:
    """Run every startup check and return the detected distribution."""
    if require_root:
        check_privilege()
    return check_platform(os_release_path or OS_RELEASE)
