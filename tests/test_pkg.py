"""
Tests for prerequisite tool installation.
"""

import pytest

from host_provisioner.errors import CommandFailed, InstallVerificationFailed, NoInstallStrategy
from host_provisioner.lib.pkg import ToolSpec, ensure_installed, install_commands, nodesource_prepare, required_tools
from host_provisioner.models import HostProfile, PackageManager


def _profile(pm: PackageManager) -> HostProfile:
    return HostProfile(package_manager=pm, arch="amd64", machine="x86_64", ipv4="10.0.0.5")


CURL = ToolSpec(
    name="curl",
    executable="curl",
    packages={pm: ("curl",) for pm in (PackageManager.APT, PackageManager.DNF, PackageManager.YUM, PackageManager.APK)},
)


class Which:
    """PATH lookup that starts finding the tool once it has been installed."""

    def __init__(self, present=(), appears_after_install=True):
        self.present = set(present)
        self.appears_after_install = appears_after_install
        self.installed = False

    def __call__(self, exe):
        if exe in self.present or (self.installed and self.appears_after_install):
            return f"/usr/bin/{exe}"
        return None


class TestInstallCommands:
    def test_apt_refreshes_index_first(self):
        assert install_commands(PackageManager.APT, ["curl"]) == [
            ["apt-get", "update", "-qq"],
            ["apt-get", "install", "-y", "-qq", "curl"],
        ]

    @pytest.mark.parametrize(
        "pm,expected",
        [
            (PackageManager.DNF, [["dnf", "install", "-y", "jq"]]),
            (PackageManager.YUM, [["yum", "install", "-y", "jq"]]),
            (PackageManager.APK, [["apk", "add", "--no-cache", "jq"]]),
        ],
    )
    def test_other_families(self, pm, expected):
        assert install_commands(pm, ["jq"]) == expected

    def test_unknown(self):
        with pytest.raises(NoInstallStrategy):
            install_commands(PackageManager.UNKNOWN, ["curl"])


class TestEnsureInstalled:
    def test_present_is_noop(self, fake_host):
        assert ensure_installed(CURL, _profile(PackageManager.APT), which=Which(present={"curl"})) is False
        assert fake_host.calls == []

    def test_installs_and_verifies(self, fake_host):
        which = Which()

        def _install(argv, cwd):
            which.installed = True
            return 0, "", ""

        fake_host.handle("apt-get", "install", fn=_install)
        assert ensure_installed(CURL, _profile(PackageManager.APT), which=which) is True
        assert fake_host.calls == [
            ["apt-get", "update", "-qq"],
            ["apt-get", "install", "-y", "-qq", "curl"],
        ]

    def test_install_command_failure_propagates(self, fake_host):
        fake_host.on("dnf", rc=1, stderr="No match for argument")
        with pytest.raises(CommandFailed):
            ensure_installed(CURL, _profile(PackageManager.DNF), which=Which())

    def test_install_that_lied(self, fake_host):
        which = Which(appears_after_install=False)
        with pytest.raises(InstallVerificationFailed):
            ensure_installed(CURL, _profile(PackageManager.APK), which=which)
        assert fake_host.ran("apk", "add")

    def test_unknown_family_has_manual_instructions(self, fake_host):
        with pytest.raises(NoInstallStrategy) as exc:
            ensure_installed(CURL, _profile(PackageManager.UNKNOWN), which=Which())
        assert "manually" in exc.value.remediation
        assert fake_host.calls == []

    def test_dry_run_skips_verification(self, fake_host):
        assert ensure_installed(CURL, _profile(PackageManager.YUM), which=Which(appears_after_install=False), dry_run=True)
        assert fake_host.calls == []


class TestRequiredTools:
    def test_node_only_when_needed(self):
        assert "node" not in [t.executable for t in required_tools(with_node=False)]
        assert [t.executable for t in required_tools()] == ["curl", "jq", "node"]

    def test_alpine_node_brings_npm(self):
        node = required_tools()[-1]
        assert node.packages[PackageManager.APK] == ("nodejs", "npm")

    def test_nodesource_rpm_setup(self, fake_host):
        nodesource_prepare(22)(PackageManager.DNF, False)
        assert fake_host.calls == [
            ["bash", "-o", "pipefail", "-c", "curl -fsSL https://rpm.nodesource.com/setup_22.x | bash -"]
        ]

    def test_nodesource_download_failure_stops_install(self, fake_host):
        fake_host.on("bash", rc=22, stderr="curl: (22) The requested URL returned error: 404")
        node = required_tools(node_major=99)[-1]
        with pytest.raises(CommandFailed):
            ensure_installed(node, _profile(PackageManager.DNF), which=Which())
        assert not fake_host.ran("dnf")

    def test_nodesource_skipped_on_alpine(self, fake_host):
        nodesource_prepare(20)(PackageManager.APK, False)
        assert fake_host.calls == []
