"""Preflight node - confirm the target is broken and the donor fixes it."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from dllbisect.core.config import BisectRunState
from dllbisect.core.files import CandidateSet
from dllbisect.core.log import logger
from dllbisect.core.report import BisectOutcome, BisectStatus
from dllbisect.probe.base import Verdict
from dllbisect.workflow.deps import BisectDeps


@dataclass
class Preflight(BaseNode[BisectRunState, BisectDeps, BisectOutcome]):
    """Probe the untouched target and the full donor overlay."""

    async def run(
        self, ctx: GraphRunContext[BisectRunState, BisectDeps]
    ) -> Advance | Finalize:
        """Short-circuit runs whose answer is already known.

        Returns:
            Finalize: RESOLVED with an empty set if the target already
                passes; IRREDUCIBLE if even the whole donor set fails
                or there is nothing to try
            Advance: Otherwise, to start iterating
        """
        from dllbisect.workflow.nodes.advance import Advance
        from dllbisect.workflow.nodes.finalize import Finalize

        state = ctx.state
        settings = ctx.deps.settings
        logger.info(
            "Starting bisection",
            universe=len(state.universe),
            max_iterations=settings.max_iterations,
            promotion=settings.promotion,
        )

        baseline = None
        if settings.verify_baseline:
            baseline = ctx.deps.trial(state, CandidateSet(), "baseline")
            if baseline == Verdict.PASS:
                logger.warn("Target passes without any donor files")
                return Finalize(BisectStatus.RESOLVED)

        if not state.universe:
            if baseline == Verdict.FAIL:
                logger.error("Target is broken and the donor universe is empty")
                return Finalize(BisectStatus.IRREDUCIBLE)
            return Advance()

        if settings.verify_donor:
            if ctx.deps.trial(state, state.universe, "donor") == Verdict.FAIL:
                logger.error("Target still fails with every donor file applied")
                state.drop(state.remaining)
                return Finalize(BisectStatus.IRREDUCIBLE)
            state.sufficient = True

        return Advance()
