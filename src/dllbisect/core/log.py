"""Logfire-backed logger with pluggable output sinks.

Everything imports the module-level ``logger`` proxy. Until
setup_logger() runs (from the CLI through Config.setup_logging(), or the
test conftest) every call on it is a silent no-op, so library code such
as the bisection engine can log unconditionally.
"""

from __future__ import annotations

import contextlib
from abc import abstractmethod
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from dllbisect.core.base import BaseConfig

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the active Logger, if any."""

    def __getattr__(self, name):
        if _current_logger is None:
            def _noop(*args, **kwargs):  # noqa: ARG001
                return contextlib.nullcontext()
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


logger = _LoggerProxy()


# Level names to OpenTelemetry severity numbers. Lower is noisier.
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}


# Span attributes that are instrumentation internals, never shown
_SKIP_KEYS = frozenset({
    'code.filepath', 'code.lineno', 'code.function',
    'logfire.msg', 'logfire.level_num', 'logfire.span_type',
    'logfire.msg_template', 'logfire.json_schema',
})
_SKIP_PREFIXES = ('otel.', 'telemetry.', 'service.', 'process.')


def level_name(level_num: int) -> str:
    """Return the quietest level name whose threshold level_num meets."""
    for name in ('fatal', 'error', 'warn', 'info', 'debug', 'trace', 'spew'):
        if level_num >= LEVELS[name]:
            return name
    return 'unknown'


class LevelFilteringExporter(SpanExporter):
    """Drops spans below a minimum level before handing them on."""

    def __init__(self, exporter: SpanExporter, min_level: str):
        self._exporter = exporter
        self._min_severity = LEVELS.get(
            (min_level or 'info').lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if kept:
            return self._exporter.export(kept)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One independent log destination."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink; inherits Logger.level when "
            "unset. One of spew, trace, debug, info, warn, error, fatal"
        ),
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Escape newlines and tabs so each record is one line",
    )
    format_template: str | None = Field(
        default=None,
        description="str.format template; None writes raw span JSON",
    )

    _processor: Any = PrivateAttr(default=None)

    @staticmethod
    def _escape(text: str) -> str:
        return (text
            .replace('\\', '\\\\')
            .replace('\n', '\\n')
            .replace('\r', '\\r')
            .replace('\t', '\\t')
        )

    @staticmethod
    def _span_fields(span) -> dict:
        from datetime import UTC, datetime

        attrs = span.attributes or {}
        filepath = attrs.get("code.filepath", "")
        lineno = attrs.get("code.lineno", "")
        return {
            'timestamp': datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
            'level': level_name(attrs.get(
                "logfire.level_num", logs_pb2.SEVERITY_NUMBER_INFO
            )),
            'message': attrs.get("logfire.msg", span.name),
            'location': f"{filepath}:{lineno}" if filepath else "",
            'function': attrs.get("code.function", ""),
        }

    def _format_span(self, span) -> str:
        if not self.format_template:
            import os
            return span.to_json() + os.linesep

        fields = self._span_fields(span)
        if self.escape_special_characters:
            fields['message'] = self._escape(fields['message'])
        try:
            line = self.format_template.format(**fields)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = {
            key: value
            for key, value in (span.attributes or {}).items()
            if key not in _SKIP_KEYS
            and not key.startswith(_SKIP_PREFIXES)
        }
        if extra:
            line += " │ " + ' '.join(
                f"{k}={v!r}" for k, v in sorted(extra.items())
            )
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Return a span processor for this sink, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Terminal output, rendered by logfire itself."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class FileSink(Sink):
    """Plain-text log file, one line per record."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}/dllbisect.log",
        description="Log file path; {log_root} and {run_name} expand",
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description="str.format template; None writes raw span JSON",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(
            self.path.format(log_root=log_root, run_name=run_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered and kept open for the life of the sink
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self._format_span
        )
        return BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level)
        )

    def close(self):
        # Processor first so buffered spans reach the file
        super().close()
        if self._file and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.flush()
                self._file.close()


class LogfireSink(Sink):
    """logfire.dev cloud export."""

    enabled: bool = Field(
        default=False, description="Send telemetry to logfire.dev"
    )
    token: str | None = Field(
        default=None, description="API token (or LOGFIRE_TOKEN)"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class Logger(BaseConfig):
    """Logger configuration plus the live logfire setup.

    close() cascades to every sink through BaseCloseable.
    """

    level: str = Field(
        default="info",
        description=(
            "Default level for sinks without their own. "
            "One of spew, trace, debug, info, warn, error, fatal"
        ),
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Create sink processors and configure logfire."""
        import logfire
        from logfire import ConsoleOptions

        sinks = (self.console, self.file, self.logfire)
        for sink in sinks:
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)
        processors = [s._processor for s in sinks if s.enabled and s._processor]

        console = False
        if self.console.enabled:
            # logfire has no spew level; trace is its noisiest
            level = self.console.level
            console = ConsoleOptions(
                min_log_level='trace' if level == 'spew' else level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name="dllbisect",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=processors or None,
        )

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        self.log(LEVELS['trace'], msg, **kwargs)

    def spew(self, msg: str, **kwargs):
        """Below trace: per-file copy chatter and the like."""
        self.log(LEVELS['spew'], msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def fatal(self, msg: str, **kwargs):
        import logfire
        logfire.fatal(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Context manager grouping the records emitted inside it."""
        import logfire
        return logfire.span(msg, **kwargs)

    def log(self, level: str | int, msg: str, **kwargs):
        """Log at a level name from LEVELS or a raw severity number."""
        import logfire
        if isinstance(level, str):
            level = LEVELS.get(level.lower(), LEVELS['info'])
        logfire.log(
            level=level, msg_template=msg, attributes=kwargs or None
        )


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Install the global logger behind ``logger``.

    Closes any previously installed logger first.

    Args:
        log_root: Directory that file sink paths expand under
        run_name: Name of this run, used in file sink paths
        level: Default level for sinks that do not set one
        console: Console sink settings (defaults if None)
        file: File sink settings (defaults if None)
        logfire: Cloud sink settings (defaults if None)

    Returns:
        The installed Logger
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger


__all__ = [
    "ConsoleSink",
    "FileSink",
    "LEVELS",
    "LevelFilteringExporter",
    "LogfireSink",
    "Logger",
    "logger",
    "setup_logger",
]
