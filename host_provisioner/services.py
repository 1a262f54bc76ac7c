"""Managed service catalogue and per-service reconciliation."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from .config import ProvisionerConfig
from .lib.accounts import chown_to, ensure_service_account
from .lib.command import run_cmd
from .lib.systemd import activate, install_unit
from .models import HostProfile, ManagedService, Role, ServiceAccount

logger = logging.getLogger(__name__)

SECRET_KEY_PATH = ("secret_key",)


def node_exporter_service(cfg: ProvisionerConfig, profile: HostProfile) -> ManagedService:
    binary = cfg.node_exporter_install_path
    listen = f"{profile.ipv4}:{cfg.node_exporter_port}"
    return ManagedService(
        name="node_exporter",
        description="Prometheus Node Exporter",
        binary_path=str(binary),
        exec_start=f"{binary} --web.listen-address={listen}",
        account=ServiceAccount(name=cfg.node_exporter_user),
        listen=listen,
        unit_type="simple",
        restart_sec=cfg.restart_sec,
    )


def cronicle_service(cfg: ProvisionerConfig, profile: HostProfile) -> ManagedService:
    base = cfg.cronicle_base_dir
    control = base / "bin" / "control.sh"
    # control.sh daemonizes and writes its own PID file; it runs as root.
    return ManagedService(
        name="cronicle",
        description="Cronicle",
        binary_path=str(control),
        exec_start=f"{control} start",
        exec_stop=f"{control} stop",
        listen=f"{profile.ipv4}:{cfg.cronicle_port}",
        unit_type="forking",
        pid_file=str(base / "logs" / "cronicle.pid"),
        restart_sec=cfg.restart_sec,
    )


def reconcile(
    service: ManagedService,
    *,
    unit_dir: str,
    timeout_s: float,
    interval_s: float,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Converge account, binary ownership, unit file and run state.

    Returns True if the unit file content changed.
    """

    if service.account is not None:
        ensure_service_account(service.account, dry_run=dry_run)
        if service.binary_path:
            chown_to(Path(service.binary_path), service.account, dry_run=dry_run)

    changed = install_unit(service, unit_dir=unit_dir, dry_run=dry_run)
    activate(service, timeout_s=timeout_s, interval_s=interval_s, dry_run=dry_run, sleep=sleep)
    return changed


def cronicle_is_initialized(base_dir: Path) -> bool:
    data = base_dir / "data"
    return data.is_dir() and any(data.iterdir())


def initialize_cluster(role: Role, base_dir: Path, *, dry_run: bool = False) -> bool:
    """Run Cronicle's one-time storage setup. Primary role only.

    Returns True if setup ran.
    """

    if role is not Role.PRIMARY:
        logger.info("Role %s: skipping cluster initialization", role.value)
        return False
    if cronicle_is_initialized(base_dir):
        logger.info("Cronicle storage already initialized under %s", str(base_dir / "data"))
        return False

    run_cmd([str(base_dir / "bin" / "control.sh"), "setup"], dry_run=dry_run)
    logger.info("Cronicle cluster initialized (primary)")
    return True
