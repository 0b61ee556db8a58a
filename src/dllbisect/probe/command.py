"""Probe that runs a shell command inside the target installation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from dllbisect.core.log import logger
from dllbisect.core.runner import TIMEOUT_EXIT, Runner
from dllbisect.probe.base import Verdict
from dllbisect.target.handle import TargetHandle

# "cannot test" (as git bisect uses it), "not executable", "not found"
DEFAULT_ERROR_EXIT_CODES = (125, 126, 127)


class CommandProbe:
    """Run the canned functional scenario and map its exit status.

    Exit 0 is PASS. A timeout, an exit code listed in
    error_exit_codes, or a failure to spawn the shell is ERROR.
    Anything else is FAIL.
    """

    def __init__(
        self,
        command: str,
        output_dir: Path,
        timeout: int = 600,
        error_exit_codes: Iterable[int] = DEFAULT_ERROR_EXIT_CODES,
        env: dict[str, str] | None = None,
        donor_root: Path | None = None,
        name: str = "probe",
    ):
        """Initialize command probe.

        Args:
            command: Shell command; {target} and {donor} expand to the
                target root and donor root
            output_dir: Directory for per-run log files
            timeout: Seconds before the run is abandoned as ERROR
            error_exit_codes: Exit codes meaning the probe could not run
            env: Extra environment variables
            donor_root: Substituted for {donor}
            name: Prefix for log file names
        """
        self.command = command
        self.output_dir = Path(output_dir)
        self.timeout = timeout
        self.error_exit_codes = frozenset(error_exit_codes)
        self.env = env
        self.donor_root = donor_root
        self.name = name
        self.runner = Runner()
        self.last_log_file: Path | None = None

    def render(self, target: TargetHandle) -> str:
        # Plain replace; probe scripts often carry their own braces
        donor = "" if self.donor_root is None else str(self.donor_root)
        return (self.command
            .replace("{target}", str(target.root))
            .replace("{donor}", donor)
        )

    def probe(self, target: TargetHandle) -> Verdict:
        timestamp = datetime.now()
        log_file = self.output_dir / (
            f"{self.name}-{timestamp.strftime('%Y%m%d-%H%M%S-%f')}.log"
        )
        self.last_log_file = log_file

        command = self.render(target)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            result = self.runner.execute(
                command,
                cwd=target.root,
                timeout=self.timeout,
                log_file=log_file,
                log_level="spew",
                check=False,
                env=self.env,
            )
        except OSError as e:
            logger.error("Probe could not be started", error=str(e))
            return Verdict.ERROR

        exited = result.exited
        if exited == 0:
            verdict = Verdict.PASS
        elif exited == TIMEOUT_EXIT or exited in self.error_exit_codes:
            verdict = Verdict.ERROR
        else:
            verdict = Verdict.FAIL

        logger.debug(
            "Probe finished",
            verdict=verdict.value,
            returncode=exited,
            log_file=str(log_file),
        )
        return verdict
