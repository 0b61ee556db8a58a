"""Bisect command - search for the minimal donor file set."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from dllbisect.core.errors import BisectError
from dllbisect.core.files import enumerate_donor
from dllbisect.core.log import logger
from dllbisect.core.report import BisectStatus
from dllbisect.probe.command import CommandProbe
from dllbisect.probe.retry import RetryingProbe
from dllbisect.target.handle import TargetHandle
from dllbisect.target.materializer import DirectoryMaterializer
from dllbisect.workflow.graph import BisectionEngine

if TYPE_CHECKING:
    from dllbisect.core.config import Config, State

EXIT_CODES = {
    BisectStatus.RESOLVED: 0,
    BisectStatus.IRREDUCIBLE: 1,
    BisectStatus.BUDGET_EXHAUSTED: 3,
}
EXIT_ERROR = 2


def build_engine(config: Config) -> BisectionEngine:
    """Wire the configured probe, materializer and target together."""
    target = TargetHandle(
        root=config.target.target_root,
        snapshot=config.target.snapshot_path(),
    )
    probe = RetryingProbe(
        CommandProbe(
            command=config.probe.command,
            output_dir=config.probe.output_dir,
            timeout=config.probe.timeout,
            error_exit_codes=config.probe.error_exit_codes,
            env=config.probe.env or None,
            donor_root=config.target.donor_root,
        ),
        attempts=config.probe.attempts,
        backoff=config.probe.backoff,
    )
    return BisectionEngine(
        materializer=DirectoryMaterializer(),
        probe=probe,
        donor_root=config.target.donor_root,
        target=target,
        settings=config.bisect,
    )


class BisectCommand(BaseModel):
    """Find the smallest set of donor files that makes the probe pass.

    The target is restored from its pristine snapshot before every
    trial, so create one first with the snapshot command.
    """

    model_config = ConfigDict(populate_by_name=True)

    max_iterations: int | None = Field(
        default=None,
        gt=0,
        alias="max-iterations",
        description="Override config.bisect.max_iterations",
    )

    async def run_workflow(self, state: State) -> int:
        """Run the bisection and report the result.

        Returns:
            Exit code: 0 resolved, 1 irreducible, 3 budget exhausted,
            2 aborted by an error
        """
        config = state.config
        config.require("target.donor_root", "target.target_root", "probe.command")
        if self.max_iterations is not None:
            config.bisect.max_iterations = self.max_iterations

        try:
            universe = enumerate_donor(
                config.target.donor_root,
                patterns=config.target.patterns,
                compare_root=(
                    config.target.snapshot_path()
                    if config.target.changed_only else None
                ),
                exclude=config.target.exclude,
            )
        except OSError as e:
            logger.error("Cannot read donor installation: {error}", error=str(e))
            return EXIT_ERROR

        engine = build_engine(config)
        try:
            outcome = await engine.run_async(universe)
        except BisectError as e:
            logger.error("Bisection aborted: {error}", error=str(e))
            return EXIT_ERROR
        finally:
            state.runtime.bisect = engine.state or state.runtime.bisect

        state.runtime.outcome = outcome
        for line in outcome.summary_lines():
            logger.info("{line}", line=line)

        if config.report_file is not None:
            try:
                config.report_file.parent.mkdir(parents=True, exist_ok=True)
                config.report_file.write_text(outcome.model_dump_json(indent=2))
            except OSError as e:
                logger.error("Cannot write report: {error}", error=str(e))
                return EXIT_ERROR
            logger.info("Report written", file=str(config.report_file))

        return EXIT_CODES[outcome.status]
