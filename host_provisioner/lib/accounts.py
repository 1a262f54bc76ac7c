from __future__ import annotations

import logging
from pathlib import Path

from ..models import ServiceAccount
from .command import run_cmd

logger = logging.getLogger(__name__)


def account_exists(name: str) -> bool:
    return run_cmd(["id", "-u", name], check=False).returncode == 0


def ensure_service_account(account: ServiceAccount, *, dry_run: bool = False) -> bool:
    """Create an unprivileged no-login account if absent. Returns True if created."""

    if account_exists(account.name):
        logger.info("Service account %s already exists", account.name)
        return False

    argv = ["useradd", "--system", "--shell", account.shell, "--user-group"]
    if account.home:
        argv += ["--home-dir", account.home, "--create-home"]
    else:
        argv.append("--no-create-home")
    run_cmd([*argv, account.name], dry_run=dry_run)
    logger.info("Created service account %s", account.name)
    return True


def chown_to(path: Path, account: ServiceAccount, *, dry_run: bool = False) -> None:
    run_cmd(["chown", f"{account.name}:{account.name}", str(path)], dry_run=dry_run)
