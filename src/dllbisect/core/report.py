"""Trial records and the final outcome of a bisection run."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from dllbisect.probe.base import Verdict


class BisectStatus(str, Enum):
    """How a run ended.

    RESOLVED: a passing minimal set was found.
    BUDGET_EXHAUSTED: iteration budget ran out; the set is partial.
    IRREDUCIBLE: nothing left to try produced a pass.
    """

    RESOLVED = "resolved"
    BUDGET_EXHAUSTED = "budget_exhausted"
    IRREDUCIBLE = "irreducible"


class TrialResult(BaseModel):
    """One materialize-and-probe trial. Never modified once recorded."""

    model_config = ConfigDict(frozen=True)

    iteration: int
    attempted: tuple[str, ...]
    verdict: Verdict
    timestamp: datetime = Field(default_factory=datetime.now)
    phase: str = ""
    cached: bool = False
    duration: float = 0.0


class TrialReport:
    """Append-only, ordered log of trials for one run."""

    def __init__(self):
        self._trials: list[TrialResult] = []

    def record(
        self,
        iteration: int,
        attempted: Iterable[str],
        verdict: Verdict,
        phase: str = "",
        cached: bool = False,
        duration: float = 0.0,
    ) -> TrialResult:
        trial = TrialResult(
            iteration=iteration,
            attempted=tuple(attempted),
            verdict=verdict,
            phase=phase,
            cached=cached,
            duration=duration,
        )
        self._trials.append(trial)
        return trial

    @property
    def trials(self) -> tuple[TrialResult, ...]:
        return tuple(self._trials)

    @property
    def probe_count(self) -> int:
        """Trials that actually ran a probe."""
        return sum(1 for trial in self._trials if not trial.cached)

    def __len__(self) -> int:
        return len(self._trials)

    @staticmethod
    def reduction(universe_size: int, minimal_size: int) -> float:
        """Fraction of the universe that turned out to be unnecessary."""
        if universe_size == 0:
            return 0.0
        return 1.0 - minimal_size / universe_size


class BisectOutcome(BaseModel):
    """What a run hands back to its caller."""

    status: BisectStatus
    minimal_set: list[str]
    universe_size: int
    iterations: int
    probe_count: int
    trials: list[TrialResult] = Field(default_factory=list)

    @computed_field
    @property
    def final(self) -> bool:
        """False when the budget ran out before the search finished."""
        return self.status != BisectStatus.BUDGET_EXHAUSTED

    @computed_field
    @property
    def reduction(self) -> float:
        return TrialReport.reduction(self.universe_size, len(self.minimal_set))

    def summary_lines(self) -> list[str]:
        """Short plain-text audit summary."""
        lines = [
            f"Status: {self.status.value}"
            + ("" if self.final else " (partial result)"),
            f"Minimal set: {len(self.minimal_set)} of "
            f"{self.universe_size} file(s), "
            f"{self.reduction:.1%} reduction",
            f"Iterations: {self.iterations}, probes run: {self.probe_count}",
        ]
        lines.extend(f"  {path}" for path in self.minimal_set)
        lines.append("Trials:")
        for trial in self.trials:
            cached = " (cached)" if trial.cached else ""
            lines.append(
                f"  #{trial.iteration} {trial.phase:<11} "
                f"{trial.verdict.value:<5} "
                f"[{len(trial.attempted)} file(s)]{cached}"
            )
        return lines


__all__ = ["BisectOutcome", "BisectStatus", "TrialReport", "TrialResult"]
