"""End-to-end tests for the bisect, snapshot and reset commands."""

import asyncio
import json
import sys

import pytest

from dllbisect.command.bisect import EXIT_ERROR, BisectCommand
from dllbisect.command.reset import ResetCommand
from dllbisect.command.snapshot import SnapshotCommand
from dllbisect.core.config import (
    BisectConfig,
    Config,
    ProbeConfig,
    State,
    TargetConfig,
)
from dllbisect.core.report import BisectStatus


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep stray dllbisect.yaml files and CLI args out of State()."""
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setattr(sys, "argv", ["dllbisect"])


def make_state(tmp_path, donor, target, command, **bisect):
    config = Config(
        target=TargetConfig(
            donor_root=donor,
            target_root=target.root,
            snapshot_root=target.snapshot,
            patterns=["**/*.dll"],
        ),
        probe=ProbeConfig(
            command=command,
            timeout=10,
            output_dir=tmp_path / "probes",
            attempts=1,
            backoff=0,
        ),
        bisect=BisectConfig(**bisect),
        log_root=tmp_path / "logs",
        report_file=tmp_path / "report.json",
    )
    return State(config=config)


NEEDS_B_AND_D = "grep -q good bin/B.dll && grep -q good bin/D.dll"


def test_bisect_finds_minimal_set(tmp_path, installation):
    donor, target = installation
    state = make_state(tmp_path, donor, target, NEEDS_B_AND_D)

    exit_code = asyncio.run(BisectCommand().run_workflow(state))

    assert exit_code == 0
    outcome = state.runtime.outcome
    assert outcome.status == BisectStatus.RESOLVED
    assert outcome.minimal_set == ["bin/B.dll", "bin/D.dll"]
    assert outcome.universe_size == 4
    assert state.runtime.bisect.minimal_set.paths() == ("bin/B.dll", "bin/D.dll")

    report = json.loads((tmp_path / "report.json").read_text())
    assert report["status"] == "resolved"
    assert report["minimal_set"] == ["bin/B.dll", "bin/D.dll"]
    assert list((tmp_path / "probes").glob("probe-*.log"))


def test_bisect_skips_identical_files(tmp_path, installation):
    """Files the target already has byte-for-byte never enter the search."""
    donor, target = installation
    (donor / "bin" / "A.dll").write_text("bad")
    state = make_state(tmp_path, donor, target, NEEDS_B_AND_D)

    assert asyncio.run(BisectCommand().run_workflow(state)) == 0
    assert state.runtime.outcome.universe_size == 3


def test_bisect_irreducible_exit_code(tmp_path, installation):
    donor, target = installation
    state = make_state(tmp_path, donor, target, "exit 1")

    assert asyncio.run(BisectCommand().run_workflow(state)) == 1
    assert state.runtime.outcome.status == BisectStatus.IRREDUCIBLE


def test_bisect_budget_exit_code(tmp_path, installation):
    donor, target = installation
    state = make_state(
        tmp_path, donor, target, NEEDS_B_AND_D, promotion="whole_half"
    )

    exit_code = asyncio.run(
        BisectCommand(max_iterations=1).run_workflow(state)
    )

    assert exit_code == 3
    assert state.config.bisect.max_iterations == 1
    assert state.runtime.outcome.final is False


def test_bisect_probe_error_aborts(tmp_path, installation):
    donor, target = installation
    state = make_state(tmp_path, donor, target, "exit 125")

    assert asyncio.run(BisectCommand().run_workflow(state)) == EXIT_ERROR
    assert state.runtime.outcome is None


def test_bisect_requires_settings(tmp_path):
    state = State(config=Config(log_root=tmp_path / "logs"))

    with pytest.raises(ValueError, match="config.target.donor_root"):
        asyncio.run(BisectCommand().run_workflow(state))


def test_bisect_without_snapshot(tmp_path, installation):
    donor, target = installation
    state = make_state(tmp_path, donor, target, NEEDS_B_AND_D)
    state.config.target.snapshot_root = tmp_path / "no-snapshot"

    assert asyncio.run(BisectCommand().run_workflow(state)) == EXIT_ERROR


def test_bisect_report_write_failure(tmp_path, installation):
    donor, target = installation
    state = make_state(tmp_path, donor, target, NEEDS_B_AND_D)
    blocker = tmp_path / "reports"
    blocker.write_text("not a directory")
    state.config.report_file = blocker / "report.json"

    assert asyncio.run(BisectCommand().run_workflow(state)) == EXIT_ERROR
    assert state.runtime.outcome.status == BisectStatus.RESOLVED


def test_max_iterations_alias():
    assert BisectCommand(**{"max-iterations": 4}).max_iterations == 4


def test_snapshot_and_reset(tmp_path):
    target_root = tmp_path / "app"
    target_root.mkdir()
    (target_root / "lib.dll").write_text("broken")
    state = State(config=Config(
        target=TargetConfig(target_root=target_root),
        log_root=tmp_path / "logs",
    ))

    assert asyncio.run(SnapshotCommand().run_workflow(state)) == 0
    assert (tmp_path / "app.pristine" / "lib.dll").read_text() == "broken"
    assert asyncio.run(SnapshotCommand().run_workflow(state)) == 2

    (target_root / "lib.dll").write_text("patched")
    assert asyncio.run(ResetCommand().run_workflow(state)) == 0
    assert (target_root / "lib.dll").read_text() == "broken"
