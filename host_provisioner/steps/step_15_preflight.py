from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.secrets import prompt_secret, read_secret_file, require_precopied_config
from ..models import Role
from ..services import SECRET_KEY_PATH

logger = logging.getLogger(__name__)


class PreflightStep:
    """Settle the cluster secret before anything on the host is mutated."""

    step_id = "15_preflight"

    def run(self, ctx: ProvisionContext) -> None:
        cfg = ctx.cfg
        ctx.decide("role", ctx.role.value)
        ctx.decide("patch_mode", ctx.patch_mode.value)
        if not cfg.cronicle_enabled:
            return

        if ctx.role is Role.SECONDARY:
            # The primary's file is authoritative; a fresh secret would split the cluster.
            ctx.secret = require_precopied_config(
                cfg.cronicle_config_path,
                SECRET_KEY_PATH,
                primary_hint=cfg.cronicle_primary_host,
            )
            ctx.decide("secret_source", "precopied_config")
            return

        if ctx.secret_file:
            ctx.secret = read_secret_file(ctx.secret_file)
            ctx.decide("secret_source", "secret_file")
        elif cfg.cronicle_secret_key:
            ctx.secret = cfg.cronicle_secret_key
            ctx.decide("secret_source", "config")
        else:
            ctx.secret = prompt_secret(read=ctx.read_secret)
            ctx.decide("secret_source", "prompt")
