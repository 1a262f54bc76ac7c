from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.probe import probe

logger = logging.getLogger(__name__)


class ProbeEnvironmentStep:
    step_id = "10_probe_environment"

    def run(self, ctx: ProvisionContext) -> None:
        profile = probe(ipv4=ctx.cfg.host_ipv4, which=ctx.which)
        ctx.profile = profile
        ctx.record["host"] = profile.as_dict()
        logger.info("Detected server IP: %s", profile.ipv4)
