"""Pytest configuration and fixtures for dllbisect tests."""

import tempfile
from pathlib import Path

import pytest

from dllbisect.core.config import BisectConfig
from dllbisect.core.files import CandidateSet
from dllbisect.core.log import ConsoleSink, FileSink, LogfireSink, setup_logger
from dllbisect.probe.base import Verdict
from dllbisect.target.handle import TargetHandle
from dllbisect.workflow.graph import BisectionEngine


def console_logging():
    """Console-only logging so debug output shows on test failures."""
    return setup_logger(
        log_root=Path(tempfile.gettempdir()) / "dllbisect-tests",
        run_name="test",
        console=ConsoleSink(level="debug"),
        file=FileSink(enabled=False),
        logfire=LogfireSink(enabled=False),
    )


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    console_logging()


@pytest.fixture
def restore_logging():
    """For tests that install their own logger."""
    yield
    console_logging()


class RecordingMaterializer:
    """Remembers which file set is "installed" instead of copying files."""

    def __init__(self):
        self.current = frozenset()
        self.calls = []

    def materialize(self, donor_root, candidates, target):
        self.current = candidates.key()
        self.calls.append(candidates.paths())


class PredicateProbe:
    """Passes when predicate(installed paths) is true."""

    def __init__(self, materializer, predicate):
        self.materializer = materializer
        self.predicate = predicate
        self.calls = 0

    def probe(self, target):
        self.calls += 1
        if self.predicate(self.materializer.current):
            return Verdict.PASS
        return Verdict.FAIL


def file_names(count, prefix="f"):
    """Stable, zero-padded file names: f00.dll, f01.dll, ..."""
    return [f"{prefix}{i:02d}.dll" for i in range(count)]


@pytest.fixture
def target_handle(tmp_path):
    return TargetHandle(root=tmp_path / "target", snapshot=tmp_path / "pristine")


@pytest.fixture
def make_engine(tmp_path, target_handle):
    """Build an engine around a predicate over the installed path set.

    Returns a factory: make_engine(predicate, **bisect_settings) ->
    (engine, probe).
    """
    def factory(predicate, observer=None, **settings):
        materializer = RecordingMaterializer()
        probe = PredicateProbe(materializer, predicate)
        engine = BisectionEngine(
            materializer=materializer,
            probe=probe,
            donor_root=tmp_path / "donor",
            target=target_handle,
            settings=BisectConfig(**settings),
            observer=observer,
        )
        return engine, probe

    return factory


@pytest.fixture
def universe():
    """Factory for CandidateSets of n generated file names."""
    def factory(count):
        return CandidateSet(file_names(count))
    return factory


@pytest.fixture
def installation(tmp_path):
    """Donor and broken target trees with a pristine snapshot.

    Donor files contain "good", target files contain "bad". The
    target also has a file the donor lacks.
    """
    donor = tmp_path / "donor"
    target = tmp_path / "target"
    for root, content in ((donor, "good"), (target, "bad")):
        (root / "bin").mkdir(parents=True)
        for name in ("A.dll", "B.dll", "C.dll", "D.dll"):
            (root / "bin" / name).write_text(content)
    (target / "bin" / "only-in-target.txt").write_text("keep me")

    handle = TargetHandle(root=target, snapshot=tmp_path / "target.pristine")
    handle.create_snapshot()
    return donor, handle
