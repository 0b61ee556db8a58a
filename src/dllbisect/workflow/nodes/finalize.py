"""Finalize node - package the run into a BisectOutcome."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from dllbisect.core.config import BisectRunState
from dllbisect.core.log import logger
from dllbisect.core.report import BisectOutcome, BisectStatus
from dllbisect.workflow.deps import BisectDeps


@dataclass
class Finalize(BaseNode[BisectRunState, BisectDeps, BisectOutcome]):
    """Terminal node."""

    status: BisectStatus

    async def run(
        self, ctx: GraphRunContext[BisectRunState, BisectDeps]
    ) -> End[BisectOutcome]:
        state = ctx.state
        report = ctx.deps.report
        state.status = self.status

        outcome = BisectOutcome(
            status=self.status,
            minimal_set=list(state.minimal_set.paths()),
            universe_size=len(state.universe),
            iterations=state.iteration_count,
            probe_count=report.probe_count,
            trials=list(report.trials),
        )

        log = logger.info if self.status == BisectStatus.RESOLVED else logger.warn
        log(
            "Bisection finished: {status}",
            status=self.status.value,
            minimal=outcome.minimal_set,
            iterations=outcome.iterations,
            probes=outcome.probe_count,
            reduction=round(outcome.reduction, 4),
        )
        return End(outcome)
