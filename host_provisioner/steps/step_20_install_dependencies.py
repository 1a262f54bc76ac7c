from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.pkg import ensure_installed, required_tools

logger = logging.getLogger(__name__)


class InstallDependenciesStep:
    step_id = "20_install_dependencies"

    def run(self, ctx: ProvisionContext) -> None:
        profile = ctx.require_profile()
        installed: list[str] = []
        for tool in required_tools(node_major=ctx.cfg.node_major, with_node=ctx.cfg.cronicle_enabled):
            if ensure_installed(tool, profile, which=ctx.which, dry_run=ctx.dry_run):
                installed.append(tool.name)
        ctx.decide("installed_tools", installed)
