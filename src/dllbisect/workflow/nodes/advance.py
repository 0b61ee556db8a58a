"""Advance node - decide whether another iteration is needed."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from dllbisect.core.config import BisectRunState
from dllbisect.core.log import logger
from dllbisect.core.report import BisectOutcome, BisectStatus
from dllbisect.probe.base import Verdict
from dllbisect.workflow.deps import BisectDeps


@dataclass
class Advance(BaseNode[BisectRunState, BisectDeps, BisectOutcome]):
    """Top of each iteration: termination checks, then the minimal recheck."""

    async def run(
        self, ctx: GraphRunContext[BisectRunState, BisectDeps]
    ) -> Split | Finalize:
        """Stop if done, out of budget, or already sufficient.

        Returns:
            Finalize: RESOLVED when remaining is empty or minimal_set
                passes alone; BUDGET_EXHAUSTED when the budget is spent
            Split: To bisect remaining
        """
        from dllbisect.workflow.nodes.finalize import Finalize
        from dllbisect.workflow.nodes.split import Split

        state = ctx.state

        if not state.remaining:
            return Finalize(BisectStatus.RESOLVED)

        budget = ctx.deps.settings.max_iterations
        if state.iteration_count >= budget:
            logger.warn(
                "Iteration budget exhausted",
                budget=budget,
                minimal=len(state.minimal_set),
                remaining=len(state.remaining),
            )
            return Finalize(BisectStatus.BUDGET_EXHAUSTED)

        # A passing minimal set makes the rest of remaining irrelevant
        if state.minimal_set:
            if ctx.deps.trial(state, state.minimal_set, "recheck") == Verdict.PASS:
                state.drop(state.remaining)
                return Finalize(BisectStatus.RESOLVED)

        logger.debug(
            "Iteration {iteration}",
            iteration=state.iteration_count + 1,
            minimal=len(state.minimal_set),
            remaining=len(state.remaining),
        )
        return Split()
