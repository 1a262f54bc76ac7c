from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from .context import ProvisionContext

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single idempotent stage."""

    step_id: str

    def run(self, ctx: ProvisionContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]


def run_pipeline(*, ctx: ProvisionContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps strictly in order. The first exception aborts the run."""

    ran: List[str] = []
    for step in steps:
        ctx.record["current_step"] = step.step_id
        logger.info("Running step %s", step.step_id)
        step.run(ctx)
        ran.append(step.step_id)

    ctx.record["current_step"] = None
    ctx.record["ran_steps"] = ran
    return PipelineResult(ran_steps=ran)
