"""Probe implementations."""

from dllbisect.probe.base import Probe, Verdict
from dllbisect.probe.command import CommandProbe
from dllbisect.probe.retry import RetryingProbe

__all__ = ["CommandProbe", "Probe", "RetryingProbe", "Verdict"]
