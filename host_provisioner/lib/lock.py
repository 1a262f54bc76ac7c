from __future__ import annotations

import fcntl
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import AlreadyRunning

logger = logging.getLogger(__name__)

DEFAULT_LOCK_PATH = "/run/host-provisioner.lock"


@contextmanager
def host_lock(path: str = DEFAULT_LOCK_PATH) -> Iterator[None]:
    """Hold an exclusive flock so only one provisioner runs per host."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(p), os.O_RDWR | os.O_CREAT, 0o600)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            raise AlreadyRunning(
                f"Another provisioner run holds {p}",
                remediation="Wait for the other run to finish and retry.",
            ) from None
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        logger.debug("Acquired %s", str(p))
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
