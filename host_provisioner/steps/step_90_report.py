from __future__ import annotations

import logging

from ..context import ProvisionContext

logger = logging.getLogger(__name__)


class ReportStep:
    step_id = "90_report"

    def run(self, ctx: ProvisionContext) -> None:
        cfg = ctx.cfg
        ip = ctx.require_profile().ipv4
        if cfg.node_exporter_enabled:
            logger.info("Node Exporter running, enabled on boot, listening on http://%s:%s/metrics", ip, cfg.node_exporter_port)
        if cfg.cronicle_enabled:
            logger.info("Cronicle running, enabled on boot, listening on http://%s:%s/", ip, cfg.cronicle_port)
            if ctx.record.get("decisions", {}).get("cluster_initialized"):
                logger.warning("Default Cronicle admin credentials are admin/admin; change them immediately")
