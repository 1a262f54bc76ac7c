from __future__ import annotations

import getpass
import shutil
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from .config import ProvisionerConfig
from .models import HostProfile, PatchMode, ReleaseArtifact, Role


@dataclass
class ProvisionContext:
    """Everything one run carries from stage to stage.

    ``profile`` is set once by the probe step and read by the rest.
    ``record`` collects decisions for the optional run report.
    """

    cfg: ProvisionerConfig
    role: Role
    session: requests.Session
    patch_mode: PatchMode = PatchMode.STRUCTURED
    secret_file: Optional[str] = None
    dry_run: bool = False
    read_secret: Callable[[str], str] = getpass.getpass
    which: Callable[[str], Optional[str]] = field(default_factory=lambda: shutil.which)
    sleep: Callable[[float], None] = time.sleep

    profile: Optional[HostProfile] = None
    secret: Optional[str] = None
    artifacts: Dict[str, ReleaseArtifact] = field(default_factory=dict)
    record: Dict[str, Any] = field(default_factory=dict)

    def require_profile(self) -> HostProfile:
        if self.profile is None:
            raise RuntimeError("Host profile missing; the probe step must run first")
        return self.profile

    def decide(self, key: str, value: Any) -> None:
        self.record.setdefault("decisions", {})[key] = value
