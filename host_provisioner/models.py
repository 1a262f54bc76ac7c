from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple


class PackageManager(enum.Enum):
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    APK = "apk"
    UNKNOWN = "unknown"


class Role(enum.Enum):
    """Cluster role of this host for the scheduler service."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class DesiredState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PatchMode(enum.Enum):
    STRUCTURED = "structured"
    TEXTUAL = "textual"


@dataclass(frozen=True)
class HostProfile:
    """Facts detected once per run; never re-derived by later stages."""

    package_manager: PackageManager
    arch: str
    machine: str
    ipv4: str

    def as_dict(self) -> dict[str, str]:
        return {
            "package_manager": self.package_manager.value,
            "arch": self.arch,
            "machine": self.machine,
            "ipv4": self.ipv4,
        }


@dataclass(frozen=True)
class ServiceAccount:
    name: str
    shell: str = "/usr/sbin/nologin"
    home: Optional[str] = None


@dataclass(frozen=True)
class ManagedService:
    name: str
    description: str
    exec_start: str
    binary_path: Optional[str] = None
    exec_stop: Optional[str] = None
    account: Optional[ServiceAccount] = None
    listen: Optional[str] = None
    unit_type: str = "simple"
    pid_file: Optional[str] = None
    working_directory: Optional[str] = None
    restart_sec: int = 10
    desired_state: DesiredState = DesiredState.RUNNING

    @property
    def unit_name(self) -> str:
        return f"{self.name}.service"


@dataclass(frozen=True)
class ReleaseArtifact:
    name: str
    version: str
    arch: str
    url: str
    install_path: Path
    downloaded: bool


@dataclass(frozen=True)
class ConfigPatch:
    path: Path
    key_path: Tuple[str, ...]
    value: Any

    @property
    def key(self) -> str:
        return self.key_path[-1]
