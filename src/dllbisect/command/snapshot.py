"""Snapshot command - record the pristine state of the target."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from dllbisect.core.errors import MaterializeError
from dllbisect.core.log import logger
from dllbisect.target.handle import TargetHandle

if TYPE_CHECKING:
    from dllbisect.core.config import State


class SnapshotCommand(BaseModel):
    """Copy the broken target installation to its pristine backup.

    Run this once, before any bisection, against an untouched target.
    Every trial restores from this copy.
    """

    overwrite: bool = Field(
        default=False,
        description="Replace an existing snapshot",
    )

    async def run_workflow(self, state: State) -> int:
        config = state.config
        config.require("target.target_root")
        target = TargetHandle(
            root=config.target.target_root,
            snapshot=config.target.snapshot_path(),
        )
        try:
            target.create_snapshot(overwrite=self.overwrite)
        except MaterializeError as e:
            logger.error("Snapshot failed: {error}", error=str(e))
            return 2

        logger.info("Snapshot created", snapshot=str(target.snapshot))
        return 0
