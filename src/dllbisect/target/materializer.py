"""Prepare the target for a trial."""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable

from dllbisect.core.files import CandidateSet
from dllbisect.core.log import logger
from dllbisect.target.handle import TargetHandle


@runtime_checkable
class Materializer(Protocol):
    """Puts a target into the state a trial describes."""

    @abstractmethod
    def materialize(
        self, donor_root: Path, candidates: CandidateSet, target: TargetHandle
    ) -> None:
        """Reset target to baseline, then apply candidates.

        Raises:
            MaterializeError: On any failure; the run must abort
        """
        ...


class DirectoryMaterializer:
    """Restore-from-snapshot then overlay, on plain directories."""

    def materialize(
        self, donor_root: Path, candidates: CandidateSet, target: TargetHandle
    ) -> None:
        target.restore()
        copied = target.overlay(donor_root, candidates)
        logger.debug(
            "Materialized candidate set",
            files=copied,
            bytes=candidates.total_size(),
        )
