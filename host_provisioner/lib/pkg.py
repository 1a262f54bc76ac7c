from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import InstallVerificationFailed, NoInstallStrategy
from ..models import HostProfile, PackageManager
from .command import run_cmd

logger = logging.getLogger(__name__)

Which = Callable[[str], Optional[str]]

NODESOURCE_GPG_URL = "https://deb.nodesource.com/gpgkey/nodesource-repo.gpg.key"
NODESOURCE_KEYRING = "/etc/apt/keyrings/nodesource.gpg"
NODESOURCE_APT_LIST = "/etc/apt/sources.list.d/nodesource.list"


@dataclass(frozen=True)
class ToolSpec:
    """A prerequisite tool and how each package-manager family provides it."""

    name: str
    executable: str
    packages: Dict[PackageManager, Tuple[str, ...]]
    # Optional repository setup run before the install command (e.g. NodeSource).
    prepare: Optional[Callable[[PackageManager, bool], None]] = field(default=None, compare=False)


def install_commands(family: PackageManager, packages: Sequence[str]) -> List[List[str]]:
    """Fixed command sequence (index refresh + install) per family."""

    pkgs = list(packages)
    if family is PackageManager.APT:
        return [
            ["apt-get", "update", "-qq"],
            ["apt-get", "install", "-y", "-qq", *pkgs],
        ]
    if family is PackageManager.DNF:
        return [["dnf", "install", "-y", *pkgs]]
    if family is PackageManager.YUM:
        return [["yum", "install", "-y", *pkgs]]
    if family is PackageManager.APK:
        return [["apk", "add", "--no-cache", *pkgs]]
    raise NoInstallStrategy(f"No install strategy for package manager {family.value!r}")


def ensure_installed(
    tool: ToolSpec,
    profile: HostProfile,
    *,
    which: Which = shutil.which,
    dry_run: bool = False,
) -> bool:
    """Make sure ``tool`` resolves on PATH. Returns True if an install ran."""

    if which(tool.executable):
        logger.info("%s is already installed", tool.name)
        return False

    family = profile.package_manager
    packages = tool.packages.get(family)
    if family is PackageManager.UNKNOWN or not packages:
        raise NoInstallStrategy(
            f"No install strategy for {tool.name} on package manager {family.value!r}",
            remediation=f"Please install {tool.name} manually and re-run the provisioner.",
        )

    logger.info("%s not found; installing via %s", tool.name, family.value)
    if tool.prepare is not None:
        tool.prepare(family, dry_run)
    for argv in install_commands(family, packages):
        run_cmd(argv, dry_run=dry_run)

    if dry_run:
        return True
    if not which(tool.executable):
        raise InstallVerificationFailed(
            f"Install of {tool.name} reported success but {tool.executable!r} is not on PATH",
            remediation=f"Install {tool.name} manually and re-run the provisioner.",
        )
    logger.info("%s is now installed", tool.name)
    return True


def _write_file(path: str, contents: str, *, dry_run: bool) -> None:
    p = Path(path)
    if dry_run:
        logger.info("Would write %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")


def nodesource_prepare(major: int) -> Callable[[PackageManager, bool], None]:
    """Configure the NodeSource repository for the requested Node.js major."""

    def prepare(family: PackageManager, dry_run: bool) -> None:
        if family is PackageManager.APT:
            run_cmd(["apt-get", "install", "-y", "-qq", "ca-certificates", "curl", "gnupg"], dry_run=dry_run)
            run_cmd(["mkdir", "-p", str(Path(NODESOURCE_KEYRING).parent)], dry_run=dry_run)
            run_cmd(
                ["bash", "-o", "pipefail", "-c", f"curl -fsSL {NODESOURCE_GPG_URL} | gpg --dearmor --yes -o {NODESOURCE_KEYRING}"],
                dry_run=dry_run,
            )
            _write_file(
                NODESOURCE_APT_LIST,
                f"deb [signed-by={NODESOURCE_KEYRING}] https://deb.nodesource.com/node_{major}.x nodistro main\n",
                dry_run=dry_run,
            )
        elif family in (PackageManager.DNF, PackageManager.YUM):
            run_cmd(["bash", "-o", "pipefail", "-c", f"curl -fsSL https://rpm.nodesource.com/setup_{major}.x | bash -"], dry_run=dry_run)
        # apk: distro packages are used as-is.

    return prepare


def _same_everywhere(*packages: str) -> Dict[PackageManager, Tuple[str, ...]]:
    return {
        PackageManager.APT: packages,
        PackageManager.DNF: packages,
        PackageManager.YUM: packages,
        PackageManager.APK: packages,
    }


def required_tools(*, node_major: int = 20, with_node: bool = True) -> List[ToolSpec]:
    """Tools the provisioner itself needs, in install order."""

    tools = [
        ToolSpec(name="curl", executable="curl", packages=_same_everywhere("curl")),
        ToolSpec(name="jq", executable="jq", packages=_same_everywhere("jq")),
    ]
    if with_node:
        tools.append(
            ToolSpec(
                name="Node.js",
                executable="node",
                packages={
                    PackageManager.APT: ("nodejs",),
                    PackageManager.DNF: ("nodejs",),
                    PackageManager.YUM: ("nodejs",),
                    PackageManager.APK: ("nodejs", "npm"),
                },
                prepare=nodesource_prepare(node_major),
            )
        )
    return tools
