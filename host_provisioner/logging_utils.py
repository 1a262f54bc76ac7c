from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

DEFAULT_LOG_PATH = "/var/log/host-provisioner.log"
FALLBACK_LOG_NAME = "host-provisioner.log"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
_MARKER = "_host_provisioner_log_path"


def _open_log(log_path: str) -> tuple[logging.Handler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    verbose: bool = False,
    also_console: bool = True,
) -> str:
    """Send the run log to ``log_path`` and the operator's console.

    The file is the audit trail of a provisioning run: every command line,
    its captured stdout/stderr (DEBUG) and each skip/change decision. The
    console only shows INFO and up unless ``verbose``. Secrets never reach
    either, since commands never carry them on argv.

    A non-root dry run cannot write to /var/log; the file then goes to the
    working directory. Returns the path actually in use.
    """

    root = logging.getLogger()
    if getattr(root, _MARKER, None):
        return getattr(root, _MARKER)

    root.setLevel(logging.DEBUG)
    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    file_handler, chosen_path = _open_log(log_path)
    file_handler.setLevel(logging.DEBUG)
    handlers: List[logging.Handler] = [file_handler]

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(logging.DEBUG if verbose else logging.INFO)
        handlers.append(console)

    for h in handlers:
        h.setFormatter(fmt)
        root.addHandler(h)

    # Connection-pool chatter from requests drowns the command trail.
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    setattr(root, _MARKER, chosen_path)
    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
