"""Tests for CommandProbe verdict mapping."""

import pytest

from dllbisect.probe.base import Probe, Verdict
from dllbisect.probe.command import CommandProbe
from dllbisect.target.handle import TargetHandle


@pytest.fixture
def target(tmp_path):
    root = tmp_path / "target"
    root.mkdir()
    return TargetHandle(root=root, snapshot=tmp_path / "pristine")


def make_probe(tmp_path, command, **kwargs):
    return CommandProbe(command, output_dir=tmp_path / "probes", **kwargs)


def test_is_a_probe(tmp_path):
    assert isinstance(make_probe(tmp_path, "true"), Probe)


def test_exit_zero_passes(tmp_path, target):
    assert make_probe(tmp_path, "true").probe(target) == Verdict.PASS


def test_nonzero_exit_fails(tmp_path, target):
    assert make_probe(tmp_path, "exit 1").probe(target) == Verdict.FAIL


@pytest.mark.parametrize("code", [125, 126, 127])
def test_error_exit_codes(tmp_path, target, code):
    """Exit codes meaning "could not test" are not functional failures."""
    assert make_probe(tmp_path, f"exit {code}").probe(target) == Verdict.ERROR


def test_custom_error_exit_codes(tmp_path, target):
    probe = make_probe(tmp_path, "exit 3", error_exit_codes=[3])
    assert probe.probe(target) == Verdict.ERROR
    assert make_probe(tmp_path, "exit 125", error_exit_codes=[]).probe(
        target
    ) == Verdict.FAIL


def test_missing_command_is_error(tmp_path, target):
    """The shell reports 127 when the probe program does not exist."""
    probe = make_probe(tmp_path, "dllbisect-no-such-program-xyz")
    assert probe.probe(target) == Verdict.ERROR


def test_timeout_is_error(tmp_path, target):
    probe = make_probe(tmp_path, "sleep 10", timeout=1)
    assert probe.probe(target) == Verdict.ERROR


def test_runs_inside_target(tmp_path, target):
    (target.root / "app.dll").write_text("good")
    probe = make_probe(tmp_path, "grep -q good app.dll")
    assert probe.probe(target) == Verdict.PASS


def test_placeholders_expand(tmp_path, target):
    donor = tmp_path / "donor"
    probe = make_probe(
        tmp_path, "echo {target} {donor} ${HOME:+set}", donor_root=donor
    )

    assert probe.render(target) == (
        f"echo {target.root} {donor} ${{HOME:+set}}"
    )


def test_log_file_written(tmp_path, target):
    probe = make_probe(tmp_path, "echo 'probe output'", name="smoke")

    probe.probe(target)

    assert probe.last_log_file is not None
    assert probe.last_log_file.parent == tmp_path / "probes"
    assert probe.last_log_file.name.startswith("smoke-")
    assert "probe output" in probe.last_log_file.read_text()


def test_environment_passed(tmp_path, target):
    probe = make_probe(
        tmp_path, 'test "$APP_MODE" = safe', env={"APP_MODE": "safe"}
    )
    assert probe.probe(target) == Verdict.PASS


def test_unusable_output_dir_is_error(tmp_path, target):
    """A log directory that cannot be created means the probe cannot run."""
    blocker = tmp_path / "probes"
    blocker.write_text("not a directory")
    probe = make_probe(tmp_path, "true")

    assert probe.probe(target) == Verdict.ERROR
