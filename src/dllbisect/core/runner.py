"""Shell command execution on top of invoke."""

import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from dllbisect.core.log import logger

# Exit code reported for a command killed by its timeout
TIMEOUT_EXIT = -1


class Runner(Context):
    """invoke.Context with a single keyword-driven execute() entry point."""

    def kill(self) -> None:
        """Kill the running subprocess, including on Windows.

        invoke sends signal.SIGKILL, which the signal module does not
        define on Windows. os.kill() there passes the number to
        TerminateProcess() as an exit code, so 9 works as-is.
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return
        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run command and return its captured result.

        Args:
            command: Shell command line
            cwd: Working directory
            timeout: Seconds before the command is killed; a timed out
                command comes back with exited == TIMEOUT_EXIT
            log_file: Where to write combined stdout/stderr
            log_level: Also replay each output line to the logger
            check: Raise on non-zero exit
            env: Variables layered over os.environ

        Returns:
            invoke.Result

        Raises:
            invoke.UnexpectedExit: If check and the command failed
        """
        kwargs = {"hide": True, "warn": not check, "in_stream": False}
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Executing command", command=command, cwd=str(cwd or ""))
        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = TIMEOUT_EXIT
            logger.warn(
                "Command timed out", command=command, timeout=timeout
            )

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(result.stdout + result.stderr)

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
