"""Test log level filtering, especially spew level."""

import tempfile
from pathlib import Path

import pytest

from dllbisect.core.log import (
    ConsoleSink,
    FileSink,
    LogfireSink,
    level_name,
    setup_logger,
)


@pytest.fixture
def temp_log_dir(restore_logging):
    """Create temporary directory for log files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def file_logger(log_dir, level, **sink_options):
    log_file = log_dir / f"{level}.log"
    logger = setup_logger(
        log_root=log_dir,
        run_name="test",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, level=level, path=str(log_file),
                      **sink_options),
        logfire=LogfireSink(enabled=False),
    )
    return logger, log_file


def test_spew_level_includes_all(temp_log_dir):
    """Test that spew level includes all messages including spew."""
    logger, log_file = file_logger(temp_log_dir, "spew")

    logger.spew("SPEW message - should be included")
    logger.trace("TRACE message - should be included")
    logger.debug("DEBUG message - should be included")
    logger.info("INFO message - should be included")
    logger.close()

    content = log_file.read_text()

    assert "SPEW message" in content
    assert "TRACE message" in content
    assert "DEBUG message" in content
    assert "INFO message" in content


def test_trace_level_filters_spew(temp_log_dir):
    """Test that trace level excludes spew but includes trace+."""
    logger, log_file = file_logger(temp_log_dir, "trace")

    logger.spew("SPEW message - should be filtered")
    logger.trace("TRACE message - should be included")
    logger.debug("DEBUG message - should be included")
    logger.close()

    content = log_file.read_text()

    assert "SPEW message" not in content
    assert "TRACE message" in content
    assert "DEBUG message" in content


def test_info_level_filters_debug(temp_log_dir):
    logger, log_file = file_logger(temp_log_dir, "info")

    logger.debug("DEBUG message - should be filtered")
    logger.info("INFO message - should be included")
    logger.warn("WARN message - should be included")
    logger.error("ERROR message - should be included")
    logger.close()

    content = log_file.read_text()

    assert "DEBUG message" not in content
    assert "INFO message" in content
    assert "WARN message" in content
    assert "ERROR message" in content


def test_log_by_level_name(temp_log_dir):
    """log() accepts level names, as the command runner uses."""
    logger, log_file = file_logger(temp_log_dir, "trace")

    logger.log("spew", "SPEW line - should be filtered")
    logger.log("debug", "DEBUG line - should be included")
    logger.close()

    content = log_file.read_text()

    assert "SPEW line" not in content
    assert "DEBUG line" in content


def test_attributes_and_level_in_line(temp_log_dir):
    logger, log_file = file_logger(temp_log_dir, "info")

    logger.info("Trial done", phase="scan", files=3)
    logger.close()

    line = log_file.read_text().strip().splitlines()[-1]
    assert " info " in line
    assert "Trial done" in line
    assert "files=3" in line
    assert "phase='scan'" in line


def test_raw_json_without_template(temp_log_dir):
    """format_template None writes each span as JSON."""
    logger, log_file = file_logger(temp_log_dir, "info", format_template=None)

    logger.info("JSON message")
    logger.close()

    content = log_file.read_text()
    assert '"name"' in content
    assert "JSON message" in content


def test_escape_special_characters(temp_log_dir):
    logger, log_file = file_logger(
        temp_log_dir, "info", escape_special_characters=True
    )

    logger.info("first line\nsecond line")
    logger.close()

    assert "first line\\nsecond line" in log_file.read_text()


@pytest.mark.parametrize("number,name", [
    (1, "spew"),
    (3, "trace"),
    (5, "debug"),
    (9, "info"),
    (13, "warn"),
    (17, "error"),
    (21, "fatal"),
    (0, "unknown"),
])
def test_level_name(number, name):
    assert level_name(number) == name
