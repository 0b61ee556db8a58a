"""Reset command - put the target back to its pristine snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from dllbisect.core.errors import MaterializeError
from dllbisect.core.log import logger
from dllbisect.target.handle import TargetHandle

if TYPE_CHECKING:
    from dllbisect.core.config import State


class ResetCommand(BaseModel):
    """Restore the target installation from its pristine snapshot.

    Undoes whatever overlay the last trial left behind, for example
    after an aborted run.
    """

    async def run_workflow(self, state: State) -> int:
        config = state.config
        config.require("target.target_root")
        target = TargetHandle(
            root=config.target.target_root,
            snapshot=config.target.snapshot_path(),
        )
        try:
            target.restore()
        except MaterializeError as e:
            logger.error("Reset failed: {error}", error=str(e))
            return 2

        logger.info("Reset complete", root=str(target.root))
        return 0
