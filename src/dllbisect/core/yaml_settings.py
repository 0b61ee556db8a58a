"""YAML settings source with include support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from dllbisect.core.log import logger

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"
CONFIG_NAME = "dllbisect.yaml"


def cli_includes(argv: list[str]) -> list[str]:
    """Collect the values of every --include option in argv."""
    includes = []
    args = iter(argv[1:])
    for arg in args:
        if arg == "--include":
            value = next(args, None)
            if value is not None:
                includes.append(value)
        elif arg.startswith("--include="):
            includes.append(arg.split("=", 1)[1])
    return includes


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """Layered YAML loading with include: directives.

    Merge order, later wins: package defaults, user config directory,
    ./dllbisect.yaml, then files named by --include on the command
    line (or the explicit yaml_file argument). Any file may carry an
    include: key naming further files, resolved relative to itself.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        includes = cli_includes(sys.argv)
        if yaml_file is not None:
            extra = [yaml_file] if isinstance(yaml_file, (str, os.PathLike)) \
                else list(yaml_file)
            includes = [str(f) for f in extra] + includes
        self.project_file = Path(
            settings_cls.model_config.get("yaml_file") or CONFIG_NAME
        )
        super().__init__(settings_cls, includes or None)

    def _read_files(self, files, deep_merge: bool = False):  # noqa: ARG002
        result = {}

        files_to_load = [
            DEFAULTS_FILE,
            Path(user_config_dir("dllbisect", appauthor=False)) / CONFIG_NAME,
            self.project_file,
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        for file_path in files_to_load:
            if file_path.is_file():
                logger.debug("Loading configuration", file=str(file_path))
                data = self._load_file_recursive(file_path, set())
                result = self._deep_merge(result, data)
            else:
                logger.spew("Configuration file not found", file=str(file_path))

        return result

    def _load_file_recursive(self, filepath: Path, visited: set[Path]) -> dict:
        """Load filepath with its include: chain merged underneath it.

        Raises:
            ValueError: On a circular include
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        merged = {}
        for inc in includes:
            inc_path = Path(inc).expanduser()
            if not inc_path.is_absolute():
                inc_path = filepath.parent / inc_path
            merged = self._deep_merge(
                merged, self._load_file_recursive(inc_path, visited.copy())
            )
        return self._deep_merge(merged, data)

    def _deep_merge(self, base: dict, override: dict) -> dict:
        result = base.copy()
        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
