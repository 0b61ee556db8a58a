#!/usr/bin/env python3
"""dllbisect CLI - find the donor DLLs that fix a broken installation."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from dllbisect.command.bisect import BisectCommand
from dllbisect.command.reset import ResetCommand
from dllbisect.command.snapshot import SnapshotCommand
from dllbisect.core.config import State
from dllbisect.core.log import logger


class CliState(State):
    """Bisect a known-good installation's files against a broken one.

    Typical session:
      dllbisect snapshot   # once, on the untouched broken target
      dllbisect bisect     # search; restores the target per trial
      dllbisect reset      # put the target back afterwards

    Configuration sources (in priority order):
    1. Command-line arguments (--config.target.donor_root value)
    2. --include files, then ./dllbisect.yaml, then the user config
    3. .env file
    4. Environment variables (DLLBISECT_CONFIG__PROBE__COMMAND=value)
    """

    bisect: CliSubCommand[BisectCommand]
    snapshot: CliSubCommand[SnapshotCommand]
    reset: CliSubCommand[ResetCommand]

    def cli_cmd(self):
        """Dispatch to the chosen subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)
        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        self.config.setup_logging()
        with self.config:
            try:
                exit_code = asyncio.run(subcommand.run_workflow(self))
            except ValueError as e:
                logger.error("{error}", error=str(e))
                exit_code = 2
        raise SystemExit(exit_code)


def main():
    """Console script entry point."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
