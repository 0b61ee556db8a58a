"""Exceptions that abort a bisection run.

Functional probe failures are never exceptions; they are Verdict values
the engine consumes. Only conditions that make further trials
untrustworthy are raised.
"""

from __future__ import annotations

from collections.abc import Sequence


class BisectError(Exception):
    """Base for every error that aborts a run."""


class ProbeInfrastructureError(BisectError):
    """The probe could not execute, so its verdict means nothing."""

    def __init__(self, message: str, attempted: Sequence[str] = ()):
        super().__init__(message)
        self.attempted = tuple(attempted)


class MaterializeError(BisectError):
    """Snapshot restore or file overlay failed."""


class BisectInvariantError(BisectError):
    """Engine bookkeeping went inconsistent. Always a bug."""


__all__ = [
    "BisectError",
    "BisectInvariantError",
    "MaterializeError",
    "ProbeInfrastructureError",
]
