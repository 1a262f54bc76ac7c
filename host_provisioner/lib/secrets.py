from __future__ import annotations

import getpass
import logging
from pathlib import Path
from typing import Callable, Optional

from ..errors import PrerequisiteConfigMissing, SecretEmpty, SecretMismatch
from .config_patch import read_json_key

logger = logging.getLogger(__name__)


def confirm_secret(first: str, second: str) -> str:
    if not first:
        raise SecretEmpty("Secret key must not be empty")
    if first != second:
        raise SecretMismatch("Secret keys do not match", remediation="Re-run and enter the same value twice.")
    return first


def prompt_secret(
    label: str = "Cronicle secret_key",
    *,
    read: Callable[[str], str] = getpass.getpass,
) -> str:
    """Masked read-twice prompt for a shared secret."""

    first = read(f"{label}: ")
    second = read(f"Confirm {label}: ")
    return confirm_secret(first, second)


def read_secret_file(path: str) -> str:
    p = Path(path)
    try:
        value = p.read_text(encoding="utf-8").rstrip("\r\n")
    except OSError as e:
        raise SecretEmpty(f"Cannot read secret file {path}: {e}") from e
    if not value:
        raise SecretEmpty(f"Secret file {path} is empty")
    return value


def require_precopied_config(
    config_path: Path,
    key_path: tuple[str, ...],
    *,
    primary_hint: Optional[str] = None,
) -> str:
    """Secondary hosts must carry the primary's config; never mint a new secret.

    Returns the secret found in the pre-copied file.
    """

    source = primary_hint or "<primary-host>"
    remediation = f"scp {source}:{config_path} {config_path}"
    if not config_path.is_file():
        raise PrerequisiteConfigMissing(
            f"{config_path} not found; copy it from the primary host before running in secondary role",
            remediation=remediation,
        )

    value = read_json_key(config_path, key_path)
    if not isinstance(value, str) or not value:
        raise PrerequisiteConfigMissing(
            f"{config_path} has no {'.'.join(key_path)}; copy the primary's config before running in secondary role",
            remediation=remediation,
        )
    logger.info("Using pre-copied %s from %s", ".".join(key_path), str(config_path))
    return value
