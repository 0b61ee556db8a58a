"""Bisection workflow graph and the engine that runs it."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from pydantic_graph import Graph

from dllbisect.core.config import BisectConfig, BisectRunState
from dllbisect.core.files import CandidateSet
from dllbisect.core.log import logger
from dllbisect.core.report import BisectOutcome, TrialReport
from dllbisect.probe.base import Probe
from dllbisect.target.handle import TargetHandle
from dllbisect.target.materializer import Materializer
from dllbisect.workflow.deps import BisectDeps


def create_workflow():
    """Create the bisection graph.

    Preflight -> Advance -> Split -> [Advance | Scan -> Advance] ...
    -> Finalize

    Returns:
        Graph with BisectRunState as state_type
    """
    logger.spew("Building bisection graph")

    # Imported here so the nodes' forward references resolve
    from dllbisect.workflow.nodes.advance import Advance
    from dllbisect.workflow.nodes.finalize import Finalize
    from dllbisect.workflow.nodes.preflight import Preflight
    from dllbisect.workflow.nodes.scan import Scan
    from dllbisect.workflow.nodes.split import Split

    return Graph(
        nodes=(Preflight, Advance, Split, Scan, Finalize),
        state_type=BisectRunState,
    )


class BisectionEngine:
    """Finds a minimal donor subset that makes the probe pass.

    Runs strictly one trial at a time: each materialize+probe pair
    completes before the next candidate set is chosen.
    """

    def __init__(
        self,
        materializer: Materializer,
        probe: Probe,
        donor_root: Path,
        target: TargetHandle,
        settings: BisectConfig | None = None,
        observer: Callable[[BisectRunState], None] | None = None,
    ):
        """Initialize engine.

        Args:
            materializer: Prepares the target for each trial
            probe: Functional test
            donor_root: Root of the known-good installation
            target: Installation under test
            settings: Budget and search options
            observer: Called with the state after every iteration
        """
        self.materializer = materializer
        self.probe = probe
        self.donor_root = Path(donor_root)
        self.target = target
        self.settings = settings or BisectConfig()
        self.observer = observer
        self.state: BisectRunState | None = None
        self.report: TrialReport | None = None

    async def run_async(self, universe: CandidateSet) -> BisectOutcome:
        """Bisect universe and return the outcome.

        Raises:
            ProbeInfrastructureError: The probe could not execute
            MaterializeError: The target could not be prepared
            BisectInvariantError: Search bookkeeping went inconsistent
        """
        from dllbisect.workflow.nodes.advance import Advance
        from dllbisect.workflow.nodes.preflight import Preflight

        self.state = state = BisectRunState.start(universe)
        self.report = TrialReport()
        deps = BisectDeps(
            materializer=self.materializer,
            probe=self.probe,
            target=self.target,
            donor_root=self.donor_root,
            settings=self.settings,
            report=self.report,
        )

        workflow = create_workflow()
        before_minimal = state.minimal_set.key()
        before_remaining = state.remaining.key()

        with logger.span("Bisection", universe=len(universe)):
            async with workflow.iter(Preflight(), state=state, deps=deps) as run:
                async for node in run:
                    if isinstance(node, Advance):
                        state.check_invariants(before_minimal, before_remaining)
                        before_minimal = state.minimal_set.key()
                        before_remaining = state.remaining.key()
                        if self.observer is not None:
                            self.observer(state)

        state.check_invariants(before_minimal, before_remaining)
        return run.result.output

    def run(self, universe: CandidateSet) -> BisectOutcome:
        """Synchronous wrapper around run_async()."""
        return asyncio.run(self.run_async(universe))
