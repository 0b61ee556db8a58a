"""Bisection engine."""

from dllbisect.workflow.deps import BisectDeps
from dllbisect.workflow.graph import BisectionEngine, create_workflow

__all__ = ["BisectDeps", "BisectionEngine", "create_workflow"]
