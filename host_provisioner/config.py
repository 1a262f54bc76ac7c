from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = "/etc/host-provisioner.yaml"

NODE_EXPORTER_INDEX_URL = "https://api.github.com/repos/prometheus/node_exporter/releases/latest"
NODE_EXPORTER_URL_TEMPLATE = (
    "https://github.com/prometheus/node_exporter/releases/download/"
    "v{version}/node_exporter-{version}.{os}-{arch}.tar.gz"
)
CRONICLE_INSTALL_URL = "https://raw.githubusercontent.com/jhuckaby/Cronicle/master/bin/install.js"


@dataclass(frozen=True)
class ProvisionerConfig:
    raw: Dict[str, Any]

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def host_ipv4(self) -> Optional[str]:
        v = self._section("host").get("ipv4")
        return str(v) if v else None

    @property
    def lock_path(self) -> str:
        return str(self._section("paths").get("lock") or "/run/host-provisioner.lock")

    @property
    def unit_dir(self) -> str:
        return str(self._section("paths").get("unit_dir") or "/etc/systemd/system")

    @property
    def restart_sec(self) -> int:
        value = self._section("systemd").get("restart_sec")
        return 10 if value is None else int(value)

    @property
    def activation_timeout_s(self) -> float:
        return float(self._section("systemd").get("activation_timeout") or 30)

    @property
    def activation_interval_s(self) -> float:
        return float(self._section("systemd").get("poll_interval") or 1)

    @property
    def node_major(self) -> int:
        return int(self._section("nodejs").get("major") or 20)

    # Node Exporter

    @property
    def node_exporter_enabled(self) -> bool:
        return bool(self._section("node_exporter").get("enabled", True))

    @property
    def node_exporter_port(self) -> int:
        return int(self._section("node_exporter").get("port") or 9100)

    @property
    def node_exporter_version(self) -> Optional[str]:
        v = self._section("node_exporter").get("version")
        return str(v) if v else None

    @property
    def node_exporter_index_url(self) -> str:
        return str(self._section("node_exporter").get("release_index_url") or NODE_EXPORTER_INDEX_URL)

    @property
    def node_exporter_url_template(self) -> str:
        return str(self._section("node_exporter").get("download_url_template") or NODE_EXPORTER_URL_TEMPLATE)

    @property
    def node_exporter_install_path(self) -> Path:
        return Path(self._section("node_exporter").get("install_path") or "/usr/local/bin/node_exporter")

    @property
    def node_exporter_user(self) -> str:
        return str(self._section("node_exporter").get("user") or "node_exporter")

    # Cronicle

    @property
    def cronicle_enabled(self) -> bool:
        return bool(self._section("cronicle").get("enabled", True))

    @property
    def cronicle_install_url(self) -> str:
        return str(self._section("cronicle").get("install_script_url") or CRONICLE_INSTALL_URL)

    @property
    def cronicle_base_dir(self) -> Path:
        return Path(self._section("cronicle").get("base_dir") or "/opt/cronicle")

    @property
    def cronicle_config_path(self) -> Path:
        return self.cronicle_base_dir / "conf" / "config.json"

    @property
    def cronicle_port(self) -> int:
        return int(self._section("cronicle").get("port") or 3012)

    @property
    def cronicle_secret_key(self) -> Optional[str]:
        v = self._section("cronicle").get("secret_key")
        return str(v) if v else None

    @property
    def cronicle_primary_host(self) -> Optional[str]:
        v = self._section("cronicle").get("primary_host")
        return str(v) if v else None


def load_config(path: str) -> ProvisionerConfig:
    """Load the YAML config. A missing file means built-in defaults."""

    p = Path(path)
    if not p.exists():
        return ProvisionerConfig(raw={})

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("provisioner config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p} must contain a mapping/object")

    return ProvisionerConfig(raw=raw)
