"""Probe interface."""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dllbisect.target.handle import TargetHandle


class Verdict(str, Enum):
    """Outcome of one probe run.

    ERROR means the probe never produced a functional answer. It must
    not be read as FAIL, or files that were never really tested would
    be discarded.
    """

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"


@runtime_checkable
class Probe(Protocol):
    """Functional pass/fail test against a materialized installation."""

    @abstractmethod
    def probe(self, target: TargetHandle) -> Verdict:
        """Run the functional scenario against target.

        Must not raise for functional failure; return Verdict.FAIL.
        Must not retry; wrap in RetryingProbe for that.
        """
        ...
