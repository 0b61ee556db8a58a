"""Bisection graph nodes."""

from dllbisect.workflow.nodes.advance import Advance
from dllbisect.workflow.nodes.finalize import Finalize
from dllbisect.workflow.nodes.preflight import Preflight
from dllbisect.workflow.nodes.scan import Scan
from dllbisect.workflow.nodes.split import Split

__all__ = [
    "Preflight",
    "Advance",
    "Split",
    "Scan",
    "Finalize",
]
