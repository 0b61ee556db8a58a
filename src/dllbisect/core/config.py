"""Application configuration and runtime state."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from dllbisect.core.base import BaseConfig, BaseState
from dllbisect.core.errors import BisectInvariantError
from dllbisect.core.files import CandidateSet
from dllbisect.core.log import Logger, setup_logger
from dllbisect.core.report import BisectOutcome, BisectStatus
from dllbisect.core.yaml_settings import YamlWithIncludesSettingsSource
from dllbisect.probe.command import DEFAULT_ERROR_EXIT_CODES

# Modules reachable from {name.attr} templates in YAML values, e.g.
# {platformdirs.user_state_dir} or {Path.home}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class TargetConfig(BaseConfig):
    """Where the known-good and broken installations live."""

    donor_root: Path | None = Field(
        default=None,
        description="Root of the known-good (donor) installation",
    )
    target_root: Path | None = Field(
        default=None,
        description="Root of the broken installation under test",
    )
    snapshot_root: Path | None = Field(
        default=None,
        description=(
            "Pristine backup of target_root. Defaults to a "
            "'<target_root>.pristine' sibling directory"
        ),
    )
    patterns: list[str] = Field(
        default_factory=lambda: ["**/*.dll"],
        description="Glob patterns selecting donor files to consider",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns to leave out of the donor universe",
    )
    changed_only: bool = Field(
        default=True,
        description=(
            "Skip donor files byte-identical to the target's copy"
        ),
    )

    def snapshot_path(self) -> Path | None:
        if self.snapshot_root is not None:
            return self.snapshot_root
        if self.target_root is None:
            return None
        return self.target_root.with_name(self.target_root.name + ".pristine")


class ProbeConfig(BaseConfig):
    """Functional probe command and its retry policy."""

    command: str | None = Field(
        default=None,
        description=(
            "Shell command that exits 0 on a healthy installation. "
            "{target} and {donor} expand to the installation roots"
        ),
    )
    timeout: int = Field(
        default=600,
        gt=0,
        description="Seconds before a probe run counts as an error",
    )
    output_dir: Path = Field(
        default=Path("{config.log_root}/probes"),
        description="Directory for per-trial probe logs",
    )
    error_exit_codes: list[int] = Field(
        default_factory=lambda: list(DEFAULT_ERROR_EXIT_CODES),
        description="Exit codes meaning the probe itself could not run",
    )
    attempts: int = Field(
        default=3,
        ge=1,
        description="Tries per trial when the probe reports an error",
    )
    backoff: float = Field(
        default=5.0,
        ge=0,
        description="Seconds before the first retry; doubles each time",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the probe",
    )


class BisectConfig(BaseConfig):
    """Search behaviour."""

    max_iterations: int = Field(
        default=10,
        gt=0,
        description="Iteration budget before giving a partial answer",
    )
    promotion: Literal["whole_half", "narrow"] = Field(
        default="narrow",
        description=(
            "'narrow' keeps bisecting inside a passing half and reduces "
            "halves that only pass together, so only needed files are "
            "promoted. 'whole_half' promotes a passing half as-is and "
            "drops a first half that fails alone (fewer probes, may "
            "over-include or give up early)"
        ),
    )
    verify_baseline: bool = Field(
        default=True,
        description="Probe the untouched target first",
    )
    verify_donor: bool = Field(
        default=True,
        description="Probe with the whole donor universe before searching",
    )
    reuse_verdicts: bool = Field(
        default=True,
        description="Never probe the same file set twice in one run",
    )


class Config(BaseConfig):
    """Everything loaded from YAML/env/CLI."""

    logger: Logger = Field(default_factory=Logger)
    target: TargetConfig = Field(default_factory=TargetConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    bisect: BisectConfig = Field(default_factory=BisectConfig)

    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "dllbisect"
        ),
        description="Root directory for log files",
    )
    run_name: str = Field(
        default="dllbisect",
        description="Name for this run, used in log paths",
    )
    report_file: Path | None = Field(
        default=None,
        description="Write the run outcome as JSON here",
    )

    def setup_logging(self) -> Logger:
        """Install the global logger from the logger section."""
        return setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )

    def require(self, *dotted: str) -> None:
        """Raise ValueError naming every unset setting in dotted."""
        missing = []
        for name in dotted:
            value: Any = self
            for part in name.split("."):
                value = getattr(value, part)
            if value in (None, ""):
                missing.append(f"config.{name}")
        if missing:
            raise ValueError(f"missing required settings: {', '.join(missing)}")

    def close(self):
        from dllbisect.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during a run)
# ============================================================

class BisectRunState(BaseState):
    """Search state for one run. Only the engine nodes mutate it."""

    universe: CandidateSet = Field(default_factory=CandidateSet)
    minimal_set: CandidateSet = Field(default_factory=CandidateSet)
    remaining: CandidateSet = Field(default_factory=CandidateSet)
    dropped: CandidateSet = Field(default_factory=CandidateSet)
    iteration_count: int = 0
    status: BisectStatus | None = None
    sufficient: bool = Field(
        default=False,
        description="minimal_set plus remaining is known to pass",
    )
    verdicts: dict[frozenset, Any] = Field(
        default_factory=dict,
        description="Verdicts already observed, keyed by file path set",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def start(cls, universe: CandidateSet) -> BisectRunState:
        return cls(universe=universe, remaining=universe)

    def promote(self, files: CandidateSet) -> None:
        self.minimal_set = self.minimal_set.union(files)
        self.remaining = self.remaining.without(files)

    def drop(self, files: CandidateSet) -> None:
        self.dropped = self.dropped.union(files)
        self.remaining = self.remaining.without(files)

    def check_invariants(
        self,
        before_minimal: frozenset[str] | None = None,
        before_remaining: frozenset[str] | None = None,
    ) -> None:
        """Raise BisectInvariantError if the bookkeeping is inconsistent.

        Args:
            before_minimal: minimal_set paths at the previous check
            before_remaining: remaining paths at the previous check
        """
        minimal = self.minimal_set.key()
        remaining = self.remaining.key()
        dropped = self.dropped.key()
        if not self.minimal_set.isdisjoint(self.remaining):
            raise BisectInvariantError(
                f"files both minimal and remaining: {sorted(minimal & remaining)}"
            )
        if minimal | remaining | dropped != self.universe.key():
            raise BisectInvariantError("minimal, remaining and dropped "
                                       "no longer partition the universe")
        if before_minimal is not None and not before_minimal <= minimal:
            raise BisectInvariantError("minimal set shrank")
        if before_remaining is not None and not remaining <= before_remaining:
            raise BisectInvariantError("remaining set grew")


class Runtime(BaseModel):
    """Runtime state container."""

    bisect: BisectRunState = Field(default_factory=BisectRunState)
    outcome: BisectOutcome | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Configuration plus runtime state; the object commands receive.

    Sources, highest priority first: constructor arguments, YAML
    (package defaults < user config < ./dllbisect.yaml < --include),
    .env, DLLBISECT_ environment variables, secrets files.
    """

    config: Config = Field(
        default_factory=Config,
        description="Configuration (from YAML/env/CLI)",
    )
    include: list[str] | None = Field(
        default=None,
        description="Extra YAML files to deep-merge over the config",
    )

    model_config = SettingsConfigDict(
        yaml_file="dllbisect.yaml",
        env_file=".env",
        env_prefix="DLLBISECT_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    # Runtime state is never loaded from YAML/env/CLI
    _runtime: Runtime = PrivateAttr(default_factory=Runtime)

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Expand {config.*} and {module.attr} templates everywhere."""
        self._substitute_recursive(self.config)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Replace {dotted.path} references that resolve; leave the rest.

        Examples:
            "{config.log_root}/probes" -> "/home/u/.local/state/dllbisect/probes"
            "{platformdirs.user_cache_dir}" -> "/home/u/.cache/dllbisect"
            "{target}" -> "{target}" (probe placeholder, untouched)
        """
        def replace(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                module_name = parts[0]
                parts = parts[1:]
            else:
                obj = self
                module_name = None

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    if module_name == 'platformdirs':
                        obj = obj('dllbisect', appauthor=False)
                    else:
                        obj = obj()
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        # A resolved value may itself hold a template
        for _ in range(5):
            expanded = re.sub(r'\{([A-Za-z_][A-Za-z0-9_.]*)\}', replace, value)
            if expanded == value:
                break
            value = expanded
        return value


__all__ = [
    "BisectConfig",
    "BisectRunState",
    "Config",
    "ProbeConfig",
    "Runtime",
    "State",
    "TargetConfig",
]
