"""Tests for startup checks."""
import pytest

from dockyard.core.errors import PreflightError
from dockyard.services import preflight
from dockyard.services.preflight import OsRelease, check_platform, check_privilege, read_os_release, run_preflight

UBUNTU = """\
PRETTY_NAME="Ubuntu 22.04.4 LTS"
NAME="Ubuntu"
VERSION_ID="22.04"
ID=ubuntu
ID_LIKE=debian
VERSION_CODENAME=jammy
UBUNTU_CODENAME=jammy
"""

MINT = """\
PRETTY_NAME="Linux Mint 21.3"
ID=linuxmint
ID_LIKE="ubuntu debian"
VERSION_CODENAME=virginia
UBUNTU_CODENAME=jammy
"""

FEDORA = """\
PRETTY_NAME="Fedora Linux 39 (Server Edition)"
ID=fedora
VERSION_CODENAME=""
"""


@pytest.fixture
def os_release(tmp_path):
    def write(text):
        path = tmp_path / "os-release"
        path.write_text(text)
        return path
    return write


@pytest.fixture
def linux(monkeypatch):
    monkeypatch.setattr(preflight.platform, "system", lambda: "Linux")


class TestReadOsRelease:
    """Parsing /etc/os-release."""

    def test_ubuntu(self, os_release):
        release = read_os_release(os_release(UBUNTU))
        assert release.id == "ubuntu"
        assert release.id_like == ["debian"]
        assert release.pretty_name == "Ubuntu 22.04.4 LTS"
        assert release.apt_based
        assert release.vendor_distro == "ubuntu"
        assert release.vendor_codename == "jammy"

    def test_derivative_uses_parent_repository(self, os_release):
        release = read_os_release(os_release(MINT))
        assert release.apt_based
        assert release.vendor_distro == "ubuntu"
        assert release.vendor_codename == "jammy"

    def test_missing_file(self, tmp_path):
        assert read_os_release(tmp_path / "nope") == OsRelease()


class TestChecks:
    """Privilege and platform gates."""

    def test_non_root_refused(self, monkeypatch):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 1000)
        with pytest.raises(PreflightError, match="root"):
            check_privilege()

    def test_root_accepted(self, monkeypatch):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 0)
        check_privilege()

    def test_non_linux_refused(self, monkeypatch, os_release):
        monkeypatch.setattr(preflight.platform, "system", lambda: "Darwin")
        with pytest.raises(PreflightError, match="Darwin"):
            check_platform(os_release(UBUNTU))

    def test_non_apt_distribution_refused(self, linux, os_release):
        with pytest.raises(PreflightError, match="Fedora"):
            check_platform(os_release(FEDORA))

    def test_debian_accepted(self, linux, os_release):
        release = check_platform(os_release("ID=debian\nVERSION_CODENAME=bookworm\n"))
        assert release.vendor_distro == "debian"
        assert release.vendor_codename == "bookworm"

    def test_run_preflight_skips_privilege_when_not_required(self, monkeypatch, linux, os_release):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 1000)
        release = run_preflight(require_root=False, os_release_path=os_release(UBUNTU))
        assert release.id == "ubuntu"

    def test_run_preflight_checks_privilege_first(self, monkeypatch, os_release):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 1000)
        monkeypatch.setattr(preflight.platform, "system", lambda: "Darwin")
        with pytest.raises(PreflightError, match="root"):
            run_preflight(os_release_path=os_release(UBUNTU))
