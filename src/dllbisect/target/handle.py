"""The target installation and its pristine snapshot."""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from dllbisect.core.errors import MaterializeError
from dllbisect.core.files import FileItem
from dllbisect.core.log import logger


@dataclass(frozen=True)
class TargetHandle:
    """Names the installation tree under test and its backup.

    restore() followed by overlay() is the only way a run mutates
    root. Nothing else may write there while a probe is executing.
    """

    root: Path
    snapshot: Path

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root))
        object.__setattr__(self, "snapshot", Path(self.snapshot))
        root = self.root.resolve()
        snapshot = self.snapshot.resolve()
        if root == snapshot:
            raise ValueError("snapshot must differ from the target root")
        # restore() wipes root, so neither tree may contain the other
        if snapshot.is_relative_to(root) or root.is_relative_to(snapshot):
            raise ValueError(
                f"snapshot {self.snapshot} and target root {self.root} "
                "must not be nested"
            )

    def has_snapshot(self) -> bool:
        return self.snapshot.is_dir()

    def create_snapshot(self, overwrite: bool = False) -> None:
        """Copy root to snapshot as the pristine baseline.

        Raises:
            MaterializeError: If root is missing, or a snapshot already
                exists and overwrite is False
        """
        if not self.root.is_dir():
            raise MaterializeError(f"target root does not exist: {self.root}")
        if self.has_snapshot():
            if not overwrite:
                raise MaterializeError(
                    f"snapshot already exists: {self.snapshot} "
                    "(use overwrite to replace it)"
                )
            shutil.rmtree(self.snapshot)

        logger.info(
            "Creating pristine snapshot",
            root=str(self.root),
            snapshot=str(self.snapshot),
        )
        try:
            shutil.copytree(self.root, self.snapshot, symlinks=True)
        except OSError as e:
            raise MaterializeError(f"snapshot copy failed: {e}") from e

    def restore(self) -> None:
        """Wipe root and copy the snapshot back over it.

        Raises:
            MaterializeError: If there is no snapshot, since trial
                independence can no longer be guaranteed
        """
        if not self.has_snapshot():
            raise MaterializeError(
                f"pristine snapshot missing: {self.snapshot}; "
                "run 'dllbisect snapshot' against a clean target first"
            )
        logger.debug("Restoring target from snapshot", root=str(self.root))
        try:
            if self.root.exists():
                shutil.rmtree(self.root)
            shutil.copytree(self.snapshot, self.root, symlinks=True)
        except OSError as e:
            raise MaterializeError(f"restore of {self.root} failed: {e}") from e

    def overlay(self, donor_root: Path, candidates: Iterable[FileItem]) -> int:
        """Copy each candidate from donor_root to the same place in root.

        Files not named are left as they are.

        Returns:
            Number of files copied

        Raises:
            MaterializeError: If a donor file is missing or a copy fails
        """
        donor_root = Path(donor_root)
        copied = 0
        for item in candidates:
            source = donor_root / item.path
            destination = self.root / item.path
            if not source.is_file():
                raise MaterializeError(f"donor file missing: {source}")
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
            except OSError as e:
                raise MaterializeError(
                    f"overlay of {item.path} failed: {e}"
                ) from e
            logger.spew("Overlaid donor file", path=item.path)
            copied += 1
        return copied
