from __future__ import annotations

import logging
import os
import re
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Optional

import requests

from ..errors import DownloadFailed, VersionResolutionFailed
from ..models import ReleaseArtifact
from .command import run_cmd

logger = logging.getLogger(__name__)

USER_AGENT = "host-provisioner/1.0"
DEFAULT_TIMEOUT_S = 60.0
_CHUNK = 64 * 1024

_VERSION_RE = re.compile(r"\bversion\s+v?(\d+(?:\.\d+)+)")


def make_session() -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    return s


def resolve_latest_version(
    index_url: str,
    *,
    session: requests.Session,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> str:
    """Return the newest published version from a release index.

    The index's own notion of "latest" is authoritative; only its
    ``tag_name`` field is read and a leading ``v`` is stripped.
    """

    try:
        resp = session.get(index_url, headers={"Accept": "application/json"}, timeout=timeout)
    except requests.RequestException as e:
        raise VersionResolutionFailed(f"Failed to query release index {index_url}: {e}") from e

    if not resp.ok:
        raise VersionResolutionFailed(f"Release index {index_url} returned HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        raise VersionResolutionFailed(f"Release index {index_url} did not return JSON") from e

    tag = data.get("tag_name") if isinstance(data, dict) else None
    version = str(tag or "").strip()
    if version[:1] in ("v", "V"):
        version = version[1:]
    if not version:
        raise VersionResolutionFailed(f"No version tag found in release index {index_url}")
    return version


def artifact_url(template: str, *, version: str, arch: str, os_name: str = "linux") -> str:
    return template.format(version=version, arch=arch, os=os_name)


def installed_version(binary_path: Path) -> Optional[str]:
    """Version reported by an installed binary's ``--version``, if any."""

    if not binary_path.is_file():
        return None
    r = run_cmd([str(binary_path), "--version"], check=False, timeout=30)
    m = _VERSION_RE.search(r.stdout + "\n" + r.stderr)
    return m.group(1) if m else None


def download(url: str, dest: Path, *, session: requests.Session, timeout: float = DEFAULT_TIMEOUT_S) -> Path:
    logger.info("Downloading %s", url)
    try:
        with session.get(url, stream=True, timeout=timeout) as resp:
            if not resp.ok:
                raise DownloadFailed(f"Download of {url} failed: HTTP {resp.status_code}")
            with open(dest, "wb") as f:
                for chunk in resp.iter_content(chunk_size=_CHUNK):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        raise DownloadFailed(f"Download of {url} failed: {e}") from e
    return dest


def extract_binary(archive: Path, binary_name: str, workdir: Path) -> Path:
    """Pull a single regular file named ``binary_name`` out of a .tar.gz.

    Only that member is written, so entries with absolute or parent paths
    elsewhere in the archive are never touched.
    """

    try:
        with tarfile.open(archive, "r:gz") as tf:
            member = next(
                (m for m in tf.getmembers() if m.isfile() and Path(m.name).name == binary_name),
                None,
            )
            if member is None:
                raise DownloadFailed(f"{binary_name} not found in {archive.name}")
            src = tf.extractfile(member)
            if src is None:
                raise DownloadFailed(f"Cannot read {member.name} from {archive.name}")
            out = workdir / binary_name
            with src, open(out, "wb") as dst:
                shutil.copyfileobj(src, dst)
    except tarfile.TarError as e:
        raise DownloadFailed(f"Corrupt archive {archive.name}: {e}") from e
    return out


def install_binary(src: Path, install_path: Path) -> None:
    """Stage next to ``install_path`` and rename over it."""

    install_path.parent.mkdir(parents=True, exist_ok=True)
    fd, staging = tempfile.mkstemp(prefix=f".{install_path.name}.", suffix=".staging", dir=str(install_path.parent))
    try:
        with os.fdopen(fd, "wb") as dst, open(src, "rb") as s:
            shutil.copyfileobj(s, dst)
        os.chmod(staging, 0o755)
        os.replace(staging, install_path)
    except BaseException:
        Path(staging).unlink(missing_ok=True)
        raise
    logger.info("Installed %s", str(install_path))


def fetch_latest(
    *,
    name: str,
    index_url: str,
    url_template: str,
    arch: str,
    install_path: Path,
    session: requests.Session,
    pinned_version: Optional[str] = None,
    dry_run: bool = False,
) -> ReleaseArtifact:
    """Resolve, download and install the newest release of ``name``.

    Skips the download when the installed binary already reports the
    resolved version.
    """

    version = pinned_version.lstrip("vV") if pinned_version else resolve_latest_version(index_url, session=session)
    url = artifact_url(url_template, version=version, arch=arch)
    logger.info("Latest %s version: v%s", name, version)

    current = installed_version(install_path)
    if current == version:
        logger.info("%s v%s already installed at %s", name, version, str(install_path))
        return ReleaseArtifact(name=name, version=version, arch=arch, url=url, install_path=install_path, downloaded=False)

    if dry_run:
        logger.info("Would download %s and install to %s", url, str(install_path))
        return ReleaseArtifact(name=name, version=version, arch=arch, url=url, install_path=install_path, downloaded=False)

    with tempfile.TemporaryDirectory(prefix=f"{name}-") as scratch:
        work = Path(scratch)
        archive = download(url, work / url.rsplit("/", 1)[-1], session=session)
        binary = extract_binary(archive, name, work)
        install_binary(binary, install_path)

    logger.info("%s v%s installed to %s (was %s)", name, version, str(install_path), current or "absent")
    return ReleaseArtifact(name=name, version=version, arch=arch, url=url, install_path=install_path, downloaded=True)


def install_cronicle(
    *,
    script_url: str,
    base_dir: Path,
    session: requests.Session,
    dry_run: bool = False,
) -> bool:
    """Run Cronicle's upstream installer under node unless already installed.

    The installer is treated as opaque: only its exit status matters.
    """

    control = base_dir / "bin" / "control.sh"
    if control.exists():
        logger.info("Cronicle already installed at %s", str(base_dir))
        return False

    if dry_run:
        logger.info("Would run Cronicle installer from %s", script_url)
        return True

    with tempfile.TemporaryDirectory(prefix="cronicle-install-") as scratch:
        script = download(script_url, Path(scratch) / "install.js", session=session)
        run_cmd(["node", str(script)], cwd=scratch, timeout=900)

    logger.info("Cronicle installed to %s", str(base_dir))
    return True
