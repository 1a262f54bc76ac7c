from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.fetch import fetch_latest, install_cronicle

logger = logging.getLogger(__name__)


class FetchArtifactsStep:
    step_id = "30_fetch_artifacts"

    def run(self, ctx: ProvisionContext) -> None:
        cfg = ctx.cfg
        profile = ctx.require_profile()

        if cfg.node_exporter_enabled:
            artifact = fetch_latest(
                name="node_exporter",
                index_url=cfg.node_exporter_index_url,
                url_template=cfg.node_exporter_url_template,
                arch=profile.arch,
                install_path=cfg.node_exporter_install_path,
                session=ctx.session,
                pinned_version=cfg.node_exporter_version,
                dry_run=ctx.dry_run,
            )
            ctx.artifacts["node_exporter"] = artifact
            ctx.decide("node_exporter", {"version": artifact.version, "downloaded": artifact.downloaded})

        if cfg.cronicle_enabled:
            ran = install_cronicle(
                script_url=cfg.cronicle_install_url,
                base_dir=cfg.cronicle_base_dir,
                session=ctx.session,
                dry_run=ctx.dry_run,
            )
            ctx.decide("cronicle_installed", ran)
