"""Tests for deep-merge behavior and loader edge cases."""

import sys

import pytest
import yaml

from dllbisect.core.config import State
from dllbisect.core.yaml_settings import YamlWithIncludesSettingsSource


@pytest.fixture(autouse=True)
def mock_argv(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["prog"])


def load(path):
    return YamlWithIncludesSettingsSource(State, yaml_file=str(path))()


def test_list_replacement_not_merge(tmp_path):
    """Lists from a later file replace, never extend, earlier ones."""
    path = tmp_path / "patterns.yaml"
    path.write_text(yaml.safe_dump({
        "config": {"target": {"patterns": ["**/*.so"]}},
    }))

    data = load(path)

    assert data["config"]["target"]["patterns"] == ["**/*.so"]


def test_later_include_wins(tmp_path):
    (tmp_path / "one.yaml").write_text("config:\n  run_name: one\n")
    (tmp_path / "two.yaml").write_text("config:\n  run_name: two\n")
    path = tmp_path / "main.yaml"
    path.write_text("include:\n  - one.yaml\n  - two.yaml\n")

    assert load(path)["config"]["run_name"] == "two"


def test_absolute_include_path(tmp_path):
    other = tmp_path / "elsewhere" / "abs.yaml"
    other.parent.mkdir()
    other.write_text("config:\n  probe:\n    timeout: 42\n")
    path = tmp_path / "main.yaml"
    path.write_text(f"include: {other}\n")

    assert load(path)["config"]["probe"]["timeout"] == 42


def test_missing_include_file_raises_error(tmp_path):
    path = tmp_path / "main.yaml"
    path.write_text("include: nope.yaml\n")

    with pytest.raises(FileNotFoundError):
        load(path)


def test_empty_yaml_file(tmp_path):
    """An empty file contributes nothing and breaks nothing."""
    path = tmp_path / "empty.yaml"
    path.write_text("")

    data = load(path)

    assert data["config"]["bisect"]["max_iterations"] == 10


def test_empty_include_list(tmp_path):
    path = tmp_path / "main.yaml"
    path.write_text("include: []\nconfig:\n  run_name: solo\n")

    assert load(path)["config"]["run_name"] == "solo"
