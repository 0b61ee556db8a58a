"""CLI command modules for dllbisect."""

from dllbisect.command.bisect import BisectCommand
from dllbisect.command.reset import ResetCommand
from dllbisect.command.snapshot import SnapshotCommand

__all__ = ["BisectCommand", "ResetCommand", "SnapshotCommand"]
