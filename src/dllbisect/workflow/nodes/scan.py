"""Scan node - per-file fallback when neither half passes."""

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
class Scan(BaseNode[BisectRunState, BisectDeps, BisectOutcome]):
    """Linear scan of the first half, one file at a time."""

    first_half: CandidateSet
    second_half: CandidateSet

    async def run(
        self, ctx: GraphRunContext[BisectRunState, BisectDeps]
    ) -> Advance | Finalize:
        """Promote the first single file that passes with minimal_set.

        Files scanned before the hit failed on their own and are
        dropped along with it leaving remaining. With no hit, narrow
        promotion reduces the first half file by file when
        minimal_set | remaining is known to pass; otherwise the whole
        first half is dropped.

        Returns:
            Advance: remaining shrank and the search continues
            Finalize: IRREDUCIBLE when the last remaining file failed
        """
        from dllbisect.workflow.nodes.advance import Advance
        from dllbisect.workflow.nodes.finalize import Finalize

        state = ctx.state
        last_element = len(state.remaining) == 1

        for position, item in enumerate(self.first_half):
            candidates = state.minimal_set.union([item])
            if ctx.deps.trial(state, candidates, "scan") == Verdict.PASS:
                state.drop(self.first_half[:position])
                state.promote(CandidateSet([item]))
                state.iteration_count += 1
                logger.info(
                    "Isolated {path}",
                    path=item.path,
                    minimal=len(state.minimal_set),
                    remaining=len(state.remaining),
                )
                return Advance()

        if last_element:
            state.drop(self.first_half)
            state.iteration_count += 1
            logger.warn(
                "Last remaining file does not restore function",
                path=self.first_half[0].path,
            )
            return Finalize(BisectStatus.IRREDUCIBLE)

        if ctx.deps.settings.promotion == "narrow" and state.sufficient:
            self.reduce(ctx)
            state.iteration_count += 1
            return Advance()

        state.drop(self.first_half)
        state.sufficient = False
        state.iteration_count += 1
        logger.info(
            "No single file passes; dropping first half",
            dropped=len(self.first_half),
            remaining=len(state.remaining),
        )
        return Advance()

    def reduce(self, ctx: GraphRunContext[BisectRunState, BisectDeps]) -> None:
        """Sort first_half into needed and unneeded files by leaving each out.

        Requires minimal_set | remaining to pass. A file whose removal
        still passes is dropped; one whose removal fails is promoted.
        minimal_set | remaining keeps passing throughout.
        """
        state = ctx.state
        promoted = dropped = 0
        for item in self.first_half:
            rest = state.minimal_set.union(state.remaining.without([item]))
            if ctx.deps.trial(state, rest, "reduce") == Verdict.PASS:
                state.drop(CandidateSet([item]))
                dropped += 1
            else:
                state.promote(CandidateSet([item]))
                promoted += 1
        logger.info(
            "No single file passes; reduced first half",
            promoted=promoted,
            dropped=dropped,
            minimal=len(state.minimal_set),
            remaining=len(state.remaining),
        )
