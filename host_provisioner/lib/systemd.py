from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from ..errors import ServiceActivationFailed
from ..models import DesiredState, ManagedService
from .command import run_cmd
from .fsutil import write_if_changed

logger = logging.getLogger(__name__)

DEFAULT_UNIT_DIR = "/etc/systemd/system"


def render_unit(service: ManagedService) -> str:
    """Unit file text as a pure function of ``service``."""

    unit = [
        "[Unit]",
        f"Description={service.description}",
        "Wants=network-online.target",
        "After=network-online.target",
        "",
        "[Service]",
        f"Type={service.unit_type}",
    ]
    if service.account is not None:
        unit += [f"User={service.account.name}", f"Group={service.account.name}"]
    if service.pid_file:
        unit.append(f"PIDFile={service.pid_file}")
    if service.working_directory:
        unit.append(f"WorkingDirectory={service.working_directory}")
    unit.append(f"ExecStart={service.exec_start}")
    if service.exec_stop:
        unit.append(f"ExecStop={service.exec_stop}")
    unit += [
        "Restart=always",
        f"RestartSec={service.restart_sec}",
        "",
        "[Install]",
        "WantedBy=multi-user.target",
        "",
    ]
    return "\n".join(unit)


def unit_path(service: ManagedService, unit_dir: str = DEFAULT_UNIT_DIR) -> Path:
    return Path(unit_dir) / service.unit_name


def install_unit(service: ManagedService, *, unit_dir: str = DEFAULT_UNIT_DIR, dry_run: bool = False) -> bool:
    """Regenerate the whole unit file. Returns True if its content changed."""

    return write_if_changed(unit_path(service, unit_dir), render_unit(service), mode=0o644, dry_run=dry_run)


def is_active(name: str, *, dry_run: bool = False) -> bool:
    if dry_run:
        return True
    return run_cmd(["systemctl", "is-active", "--quiet", name], check=False).returncode == 0


def wait_active(
    name: str,
    *,
    timeout_s: float = 30.0,
    interval_s: float = 1.0,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Poll until ``name`` is active or the time budget is exhausted."""

    deadline = clock() + timeout_s
    while True:
        if is_active(name, dry_run=dry_run):
            logger.info("%s is active", name)
            return
        if clock() >= deadline:
            break
        sleep(interval_s)

    logs = run_cmd(["journalctl", "-u", name, "-n", "50", "--no-pager"], check=False)
    logger.error("%s failed to become active; recent logs:\n%s", name, logs.stdout.strip())
    raise ServiceActivationFailed(
        f"Failed to start {name} within {timeout_s:g}s",
        remediation=f"sudo systemctl status {name}\njournalctl -u {name} -n 50 --no-pager",
    )


def activate(
    service: ManagedService,
    *,
    timeout_s: float = 30.0,
    interval_s: float = 1.0,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Drive the unit to its desired state."""

    run_cmd(["systemctl", "daemon-reload"], dry_run=dry_run)

    if service.desired_state is DesiredState.STOPPED:
        run_cmd(["systemctl", "disable", "--now", "--quiet", service.name], dry_run=dry_run)
        logger.info("%s disabled and stopped", service.name)
        return

    run_cmd(["systemctl", "enable", "--quiet", service.name], dry_run=dry_run)
    run_cmd(["systemctl", "restart", service.name], dry_run=dry_run)
    wait_active(service.name, timeout_s=timeout_s, interval_s=interval_s, dry_run=dry_run, sleep=sleep)
