"""Split node - test each half of remaining on top of minimal_set."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from dllbisect.core.config import BisectRunState
from dllbisect.core.files import CandidateSet
from dllbisect.core.log import logger
from dllbisect.core.report import BisectOutcome
from dllbisect.probe.base import Verdict
from dllbisect.workflow.deps import BisectDeps


def accept_half(
    ctx: GraphRunContext[BisectRunState, BisectDeps],
    half: CandidateSet,
    other: CandidateSet,
) -> None:
    """Apply a passing half according to the promotion mode.

    whole_half promotes every file in it. narrow keeps searching
    inside a multi-file half and drops the other half, which the pass
    has shown to be unnecessary.
    """
    state = ctx.state
    if ctx.deps.settings.promotion == "narrow" and len(half) > 1:
        state.drop(other)
        state.sufficient = True
        logger.info("Narrowing search", remaining=len(half), dropped=len(other))
        return

    state.promote(half)
    logger.info(
        "Promoted {count} file(s) to minimal set",
        count=len(half),
        minimal=len(state.minimal_set),
        remaining=len(state.remaining),
    )


@dataclass
class Split(BaseNode[BisectRunState, BisectDeps, BisectOutcome]):
    """Binary split of remaining."""

    async def run(
        self, ctx: GraphRunContext[BisectRunState, BisectDeps]
    ) -> Advance | Scan:
        """Try minimal_set with the first half, then the second.

        Returns:
            Advance: A half passed and was accepted
            Scan: Neither half passed
        """
        from dllbisect.workflow.nodes.advance import Advance
        from dllbisect.workflow.nodes.scan import Scan

        state = ctx.state
        first_half, second_half = state.remaining.split()

        candidates = state.minimal_set.union(first_half)
        if ctx.deps.trial(state, candidates, "first_half") == Verdict.PASS:
            accept_half(ctx, first_half, second_half)
            state.iteration_count += 1
            return Advance()

        # Accepting an empty second half would never shrink remaining
        if second_half:
            candidates = state.minimal_set.union(second_half)
            if ctx.deps.trial(state, candidates, "second_half") == Verdict.PASS:
                accept_half(ctx, second_half, first_half)
                state.iteration_count += 1
                return Advance()

        return Scan(first_half=first_half, second_half=second_half)
