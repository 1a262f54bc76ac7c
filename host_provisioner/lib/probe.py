from __future__ import annotations

import ipaddress
import logging
import platform
import shutil
from typing import Callable, Optional, Tuple

from ..errors import NoRoutableAddress, UnsupportedArchitecture, UnsupportedEnvironment
from ..models import HostProfile, PackageManager
from .command import run_cmd

logger = logging.getLogger(__name__)

# Probed in order; first resolvable executable wins.
PACKAGE_MANAGER_PRIORITY: Tuple[Tuple[str, PackageManager], ...] = (
    ("apt-get", PackageManager.APT),
    ("dnf", PackageManager.DNF),
    ("yum", PackageManager.YUM),
    ("apk", PackageManager.APK),
)

# Hardware identifier -> release naming convention.
_ARCH_MAP = {
    "x86_64": "amd64",
    "aarch64": "arm64",
    "armv7l": "armv7",
}


def normalize_arch(machine: str) -> str:
    try:
        return _ARCH_MAP[machine.strip().lower()]
    except KeyError:
        raise UnsupportedArchitecture(
            f"Unsupported architecture: {machine}",
            remediation=f"Supported identifiers: {', '.join(sorted(_ARCH_MAP))}",
        ) from None


def detect_package_manager(which: Callable[[str], Optional[str]] = shutil.which) -> PackageManager:
    for exe, family in PACKAGE_MANAGER_PRIORITY:
        if which(exe):
            return family
    raise UnsupportedEnvironment(
        "Could not detect package manager (apt/yum/dnf/apk)",
        remediation="Install the prerequisites manually and re-run the provisioner.",
    )


def parse_ipv4_candidates(ip_output: str) -> list[str]:
    """Extract non-loopback IPv4 addresses from `ip -o -4 addr show` output.

    Interface order from the kernel is kept as-is so selection is stable.
    Example line:
      2: eth0    inet 10.0.0.5/24 brd 10.0.0.255 scope global eth0\\ ...
    """

    out: list[str] = []
    for line in ip_output.splitlines():
        fields = line.split()
        if "inet" not in fields:
            continue
        idx = fields.index("inet")
        if idx + 1 >= len(fields):
            continue
        try:
            iface = ipaddress.ip_interface(fields[idx + 1])
        except ValueError:
            continue
        if iface.version != 4 or iface.ip.is_loopback:
            continue
        out.append(str(iface.ip))
    return out


def validate_ipv4(value: str) -> str:
    try:
        addr = ipaddress.ip_address(value.strip())
    except ValueError:
        raise NoRoutableAddress(f"Not an IPv4 address: {value!r}") from None
    if addr.version != 4 or addr.is_loopback or addr.is_unspecified:
        raise NoRoutableAddress(f"Address is not routable: {value}")
    return str(addr)


def detect_primary_ipv4() -> str:
    r = run_cmd(["ip", "-o", "-4", "addr", "show"])
    candidates = parse_ipv4_candidates(r.stdout)
    if not candidates:
        raise NoRoutableAddress(
            "Could not detect a non-loopback IPv4 address",
            remediation="Check 'ip addr' or pin host.ipv4 in the provisioner config.",
        )
    return candidates[0]


def probe(
    *,
    machine: Optional[str] = None,
    ipv4: Optional[str] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> HostProfile:
    """Detect the host profile. Read-only; any failure here aborts the run."""

    pm = detect_package_manager(which)
    raw_machine = machine or platform.machine()
    arch = normalize_arch(raw_machine)
    ip = validate_ipv4(ipv4) if ipv4 else detect_primary_ipv4()

    profile = HostProfile(package_manager=pm, arch=arch, machine=raw_machine, ipv4=ip)
    logger.info("Host: pkg=%s arch=%s ip=%s", pm.value, arch, ip)
    return profile

