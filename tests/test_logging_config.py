from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.cycle",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_plain_format_matches_console_contract() -> None:
    formatter = ContextualFormatter(
        fmt="[%(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S", extra_keys=[]
    )
    record = _record("Wake: Generating dummy audio data...", sensor_id="sensor_001")
    record.created = 0.0

    line = formatter.format(record)

    assert line.startswith("[")
    assert line.endswith("] Wake: Generating dummy audio data...")
    assert len(line.split("] ", 1)[0]) == len("[YYYY-MM-DD HH:MM:SS")


def test_context_keys_are_appended_when_enabled() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")
    record = _record("Sleep: Entering sleep mode...", sensor_id="sensor_001", cycle=2, run_id=None)

    assert formatter.format(record) == "Sleep: Entering sleep mode... | sensor_id=sensor_001 cycle=2"
