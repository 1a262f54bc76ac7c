from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def atomic_write_text(path: str | Path, contents: str, *, mode: Optional[int] = None) -> None:
    """Write ``contents`` to ``path`` via a sibling temp file and rename.

    Readers see either the old file or the new one, never a partial write.
    The existing file's permission bits are kept unless ``mode`` is given.
    """

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if mode is None and p.exists():
        mode = p.stat().st_mode & 0o7777

    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(contents)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def write_if_changed(path: str | Path, contents: str, *, mode: Optional[int] = None, dry_run: bool = False) -> bool:
    """Atomically replace ``path`` unless it already holds ``contents``."""

    p = Path(path)
    if p.exists() and p.read_text(encoding="utf-8") == contents:
        logger.info("Unchanged %s", str(p))
        return False
    if dry_run:
        logger.info("Would write %s", str(p))
        return True
    atomic_write_text(p, contents, mode=mode)
    logger.info("Wrote %s", str(p))
    return True
