"""Tests for the dllbisect command line."""

import sys

import pytest
from pydantic_settings import CliApp

from dllbisect.cli import CliState

pytestmark = pytest.mark.usefixtures("restore_logging")


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setattr(sys, "argv", ["dllbisect"])


def run_cli(*args):
    """Run the CLI and return its exit code."""
    with pytest.raises(SystemExit) as excinfo:
        CliApp.run(CliState, cli_args=list(args))
    return excinfo.value.code


def quiet_args(tmp_path):
    """Keep log files under tmp_path."""
    return [f"--config.log_root={tmp_path / 'logs'}"]


def test_snapshot_then_reset(tmp_path):
    target = tmp_path / "app"
    target.mkdir()
    (target / "core.dll").write_text("broken")
    common = [f"--config.target.target_root={target}", *quiet_args(tmp_path)]

    assert run_cli(*common, "snapshot") == 0
    (target / "core.dll").write_text("patched")
    assert run_cli(*common, "reset") == 0

    assert (target / "core.dll").read_text() == "broken"


def test_bisect_end_to_end(tmp_path, installation):
    donor, target = installation
    report = tmp_path / "report.json"

    code = run_cli(
        f"--config.target.donor_root={donor}",
        f"--config.target.target_root={target.root}",
        f"--config.target.snapshot_root={target.snapshot}",
        "--config.probe.command=grep -q good bin/C.dll",
        f"--config.report_file={report}",
        *quiet_args(tmp_path),
        "bisect",
        "--max-iterations=5",
    )

    assert code == 0
    assert '"bin/C.dll"' in report.read_text()


def test_missing_settings_exit_code(tmp_path):
    assert run_cli(*quiet_args(tmp_path), "bisect") == 2
