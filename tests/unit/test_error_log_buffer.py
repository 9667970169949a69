from __future__ import annotations

import json
import re
from pathlib import Path

from curriculum_filter.logging.error_log import ErrorLogBuffer
from curriculum_filter.models.error_record import ErrorRecord


def test_flush_empty_buffer_writes_nothing(temp_workdir: Path):
    buffer = ErrorLogBuffer()
    assert buffer.flush() is None
    assert list((temp_workdir / "logs").iterdir()) == []


def test_flush_writes_json_lines(temp_workdir: Path):
    buffer = ErrorLogBuffer()
    buffer.append(ErrorRecord.create("a.xlsx", "MALFORMED_INPUT", "bad zip"))
    buffer.append(ErrorRecord.create("out.xlsx", "EXPORT_WRITE_ERROR", "disk full"))
    assert len(buffer) == 2

    path = buffer.flush()
    assert path is not None
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    assert path.parent == Path("./logs")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["error_type"] for line in lines] == ["MALFORMED_INPUT", "EXPORT_WRITE_ERROR"]
    assert len(buffer) == 0


def test_flush_appends_to_same_file(tmp_path: Path):
    buffer = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buffer.append(ErrorRecord.create("a.xlsx", "CONFIG_ERROR", "x"))
    first = buffer.flush()
    buffer.append(ErrorRecord.create("a.xlsx", "CONFIG_ERROR", "y"))
    second = buffer.flush()
    assert first == second
    assert len(first.read_text(encoding="utf-8").splitlines()) == 2
