"""Donor file inventory: FileItem, CandidateSet and enumeration."""

from __future__ import annotations

import filecmp
import fnmatch
from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, field_validator

from dllbisect.core.log import logger


class FileItem(BaseModel):
    """One donor file, keyed by its path relative to the donor root.

    size and mtime are carried for the report only.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    size: int = 0
    mtime: datetime | None = None

    @field_validator("path")
    @classmethod
    def _normalize(cls, value: str) -> str:
        posix = PurePosixPath(value.replace("\\", "/"))
        if posix.is_absolute() or ".." in posix.parts or not posix.parts:
            raise ValueError(f"not a relative file path: {value!r}")
        return str(posix)

    @classmethod
    def from_disk(cls, root: Path, file_path: Path) -> FileItem:
        stat = file_path.stat()
        return cls(
            path=file_path.relative_to(root).as_posix(),
            size=stat.st_size,
            mtime=datetime.fromtimestamp(stat.st_mtime),
        )


class CandidateSet:
    """Ordered, immutable collection of FileItems unique by path.

    Order is donor enumeration order and is what makes splits, and
    therefore whole runs, reproducible.
    """

    __slots__ = ("_items", "_index")

    def __init__(self, items: Iterable[FileItem | str] = ()):
        normalized = tuple(
            item if isinstance(item, FileItem) else FileItem(path=item)
            for item in items
        )
        index = {}
        for position, item in enumerate(normalized):
            if item.path in index:
                raise ValueError(f"duplicate path in candidate set: {item.path}")
            index[item.path] = position
        self._items = normalized
        self._index = index

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[FileItem]:
        return iter(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __getitem__(self, position):
        if isinstance(position, slice):
            return CandidateSet(self._items[position])
        return self._items[position]

    def __contains__(self, item: object) -> bool:
        if isinstance(item, FileItem):
            item = item.path
        return item in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CandidateSet):
            return NotImplemented
        return self.paths() == other.paths()

    def __hash__(self) -> int:
        return hash(self.paths())

    def __repr__(self) -> str:
        return f"CandidateSet({list(self.paths())!r})"

    def paths(self) -> tuple[str, ...]:
        return tuple(item.path for item in self._items)

    def key(self) -> frozenset[str]:
        """Order-insensitive identity, for memoising verdicts."""
        return frozenset(self._index)

    def split(self) -> tuple[CandidateSet, CandidateSet]:
        """Split at the midpoint; the first half gets the odd element."""
        mid = (len(self._items) + 1) // 2
        return CandidateSet(self._items[:mid]), CandidateSet(self._items[mid:])

    def union(self, other: Iterable[FileItem]) -> CandidateSet:
        """Items of self, then items of other not already present."""
        extra = [item for item in other if item.path not in self._index]
        return CandidateSet(self._items + tuple(extra))

    def without(self, other: Iterable[FileItem | str]) -> CandidateSet:
        removed = {
            item.path if isinstance(item, FileItem) else item
            for item in other
        }
        return CandidateSet(i for i in self._items if i.path not in removed)

    def isdisjoint(self, other: CandidateSet) -> bool:
        return self.key().isdisjoint(other.key())

    def total_size(self) -> int:
        return sum(item.size for item in self._items)


def _matches(path: str, patterns: Sequence[str]) -> bool:
    # fnmatch's * already crosses "/", so "**/*.dll" would miss
    # top-level files; match the bare pattern tail as well.
    name = PurePosixPath(path).name
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatch(name, pattern[3:]):
            return True
    return False


def enumerate_donor(
    donor_root: Path,
    patterns: Sequence[str] = ("**/*.dll",),
    compare_root: Path | None = None,
    exclude: Sequence[str] = (),
) -> CandidateSet:
    """Build the donor file universe from a known-good installation.

    Args:
        donor_root: Root of the known-good installation
        patterns: Glob patterns (relative, POSIX style) to include
        compare_root: Broken installation; files byte-identical to the
            same path under it are skipped since they cannot be the fix
        exclude: Glob patterns to leave out even when included

    Returns:
        CandidateSet sorted by relative path

    Raises:
        FileNotFoundError: If donor_root is not a directory
    """
    donor_root = Path(donor_root)
    if not donor_root.is_dir():
        raise FileNotFoundError(f"donor root is not a directory: {donor_root}")

    items = []
    skipped_identical = 0
    found = {
        p.relative_to(donor_root).as_posix(): p
        for p in donor_root.rglob("*")
        if p.is_file()
    }
    for relative in sorted(found):
        file_path = found[relative]
        if not _matches(relative, patterns) or _matches(relative, exclude):
            continue
        if compare_root is not None:
            counterpart = Path(compare_root) / relative
            if counterpart.is_file() and filecmp.cmp(
                file_path, counterpart, shallow=False
            ):
                skipped_identical += 1
                logger.spew("Skipping identical donor file", path=relative)
                continue
        items.append(FileItem.from_disk(donor_root, file_path))

    logger.info(
        "Enumerated donor universe",
        donor_root=str(donor_root),
        files=len(items),
        skipped_identical=skipped_identical,
    )
    return CandidateSet(items)


__all__ = ["CandidateSet", "FileItem", "enumerate_donor"]
