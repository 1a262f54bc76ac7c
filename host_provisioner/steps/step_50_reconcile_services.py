from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.config_patch import apply_config_patch
from ..models import ConfigPatch
from ..services import SECRET_KEY_PATH, cronicle_service, initialize_cluster, node_exporter_service, reconcile

logger = logging.getLogger(__name__)


class ReconcileServicesStep:
    step_id = "50_reconcile_services"

    def run(self, ctx: ProvisionContext) -> None:
        cfg = ctx.cfg
        profile = ctx.require_profile()
        opts = dict(
            unit_dir=cfg.unit_dir,
            timeout_s=cfg.activation_timeout_s,
            interval_s=cfg.activation_interval_s,
            dry_run=ctx.dry_run,
            sleep=ctx.sleep,
        )
        units: dict[str, bool] = {}

        if cfg.node_exporter_enabled:
            svc = node_exporter_service(cfg, profile)
            units[svc.name] = reconcile(svc, **opts)

        if cfg.cronicle_enabled:
            if not ctx.secret:
                raise RuntimeError("Cronicle secret missing; the preflight step must run first")
            patch = ConfigPatch(path=cfg.cronicle_config_path, key_path=SECRET_KEY_PATH, value=ctx.secret)
            if ctx.dry_run and not patch.path.exists():
                # The installer that would create it was skipped as well.
                logger.info("Would set %s in %s", patch.key, str(patch.path))
                ctx.decide("secret_updated", True)
            else:
                ctx.decide("secret_updated", apply_config_patch(patch, mode=ctx.patch_mode, dry_run=ctx.dry_run))
            ctx.decide("cluster_initialized", initialize_cluster(ctx.role, cfg.cronicle_base_dir, dry_run=ctx.dry_run))

            svc = cronicle_service(cfg, profile)
            units[svc.name] = reconcile(svc, **opts)

        ctx.decide("units_changed", units)
