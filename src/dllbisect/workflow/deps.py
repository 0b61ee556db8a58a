"""Collaborators handed to every bisection graph node."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from dllbisect.core.config import BisectConfig, BisectRunState
from dllbisect.core.errors import ProbeInfrastructureError
from dllbisect.core.files import CandidateSet
from dllbisect.core.log import logger
from dllbisect.core.report import TrialReport
from dllbisect.probe.base import Probe, Verdict
from dllbisect.target.handle import TargetHandle
from dllbisect.target.materializer import Materializer

PREFLIGHT_PHASES = frozenset({"baseline", "donor"})


@dataclass
class BisectDeps:
    """Everything the engine needs besides its own state."""

    materializer: Materializer
    probe: Probe
    target: TargetHandle
    donor_root: Path
    settings: BisectConfig = field(default_factory=BisectConfig)
    report: TrialReport = field(default_factory=TrialReport)

    def trial(
        self, state: BisectRunState, candidates: CandidateSet, phase: str
    ) -> Verdict:
        """Materialize candidates, probe, and record the verdict.

        An identical file set seen earlier in the run is answered from
        the recorded verdict when reuse_verdicts is on.

        Raises:
            ProbeInfrastructureError: If the probe reports ERROR
            MaterializeError: If the target could not be prepared
        """
        iteration = 0 if phase in PREFLIGHT_PHASES else state.iteration_count + 1
        key = candidates.key()

        if self.settings.reuse_verdicts and key in state.verdicts:
            verdict = state.verdicts[key]
            self.report.record(
                iteration, candidates.paths(), verdict, phase=phase, cached=True
            )
            logger.debug(
                "Reusing verdict for identical file set",
                phase=phase,
                files=len(candidates),
                verdict=verdict.value,
            )
            return verdict

        with logger.span(
            "Trial {phase}", phase=phase, iteration=iteration,
            files=len(candidates),
        ):
            started = time.monotonic()
            self.materializer.materialize(self.donor_root, candidates, self.target)
            verdict = self.probe.probe(self.target)
            duration = time.monotonic() - started

        self.report.record(
            iteration, candidates.paths(), verdict, phase=phase,
            duration=duration,
        )

        if verdict == Verdict.ERROR:
            logger.error(
                "Probe could not run; aborting bisection",
                phase=phase,
                files=len(candidates),
            )
            raise ProbeInfrastructureError(
                f"probe infrastructure error during {phase} trial "
                f"with {len(candidates)} file(s)",
                attempted=candidates.paths(),
            )

        state.verdicts[key] = verdict
        logger.info(
            "Trial {phase}: {verdict}",
            phase=phase,
            verdict=verdict.value,
            iteration=iteration,
            files=len(candidates),
            duration=round(duration, 3),
        )
        return verdict
