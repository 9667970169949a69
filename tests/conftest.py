# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from curriculum_filter.excel.reader import Workbook
from curriculum_filter.logging.init import reset_logging
from curriculum_filter.services.aggregator import IngestResult, ingest_workbook


@pytest.fixture(autouse=True)
def _clean_logging():
    # 各テストで stdout (capsys) に付け直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("CURRICULUM_FILTER_CONFIG", raising=False)
        yield p


def make_row(cls: Any, subject: Any, chapter: Any, topic: Any, **extra: Any) -> dict[str, Any]:
    row = {"class": cls, "subject_name": subject, "chapter_name": chapter, "topic_name": topic}
    row.update(extra)
    return row


@pytest.fixture()
def row_factory() -> Callable[..., dict[str, Any]]:
    return make_row


@pytest.fixture()
def sample_rows() -> dict[str, list[dict[str, Any]]]:
    """Two categories; Math has two classes, Science a single topic."""
    return {
        "Math": [
            make_row(10, "Algebra", "Linear", "Slope", question="q1", note=""),
            make_row(10, "Algebra", "Linear", "Intercept", question="q2", note="easy"),
            make_row(10, "Geometry", "Circles", "Area", question="q3", note=""),
            make_row(9, "Algebra", "Basics", "Terms", question="q4", note=""),
        ],
        "Science": [
            make_row(8, "Physics", "Motion", "Speed", question="q5", note="lab"),
        ],
    }


@pytest.fixture()
def sample_workbook(sample_rows) -> Workbook:
    return Workbook.from_rows(sample_rows, source_name="sample.xlsx")


@pytest.fixture()
def ingested(sample_workbook) -> IngestResult:
    return ingest_workbook(sample_workbook)


@pytest.fixture()
def write_xlsx(temp_workdir: Path) -> Callable[..., Path]:
    """Factory writing ``{sheet: rows}`` to a real .xlsx under data/."""
    def _write(sheets: Mapping[str, Sequence[Mapping[str, Any]]], name: str = "input.xlsx") -> Path:
        path = temp_workdir / "data" / name
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet, rows in sheets.items():
                pd.DataFrame(list(rows)).to_excel(writer, sheet_name=sheet, index=False)
        return path

    return _write


@pytest.fixture()
def sample_config_yaml() -> str:
    return """grouping_columns:
  subject: [subject_name, subject]
batch_size: 2
export_batch_size: 1
date_format: "%d/%m/%Y"
display_limits:
  topic: 5
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "filter.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
