from __future__ import annotations

import doctest
import re

import pytest

import curriculum_filter.services.summary as summary_module
from curriculum_filter.models.processing_result import ExportResult, IngestStats
from curriculum_filter.services.summary import format_seconds, render_summary_body, render_summary_line

"""Unit tests for SUMMARY line rendering."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY sheets=([0-9]+) skipped_sheets=([0-9]+) rows=([0-9]+) duplicates=([0-9]+) "
    r"exported_sheets=([0-9]+) exported_rows=([0-9]+) elapsed_sec=([0-9]+\.?[0-9]*)$"
)


def _stats(**overrides) -> IngestStats:
    values = dict(sheets=2, skipped_sheets=0, input_rows=5, ingested_rows=5, duplicate_rows=0, elapsed_seconds=1.5)
    values.update(overrides)
    return IngestStats(**values)


def test_render_without_export():
    line = render_summary_line(_stats())
    assert line == (
        "SUMMARY sheets=2 skipped_sheets=0 rows=5 duplicates=0 "
        "exported_sheets=0 exported_rows=0 elapsed_sec=1.5"
    )
    assert SUMMARY_PATTERN.match(line)


def test_render_with_export():
    export = ExportResult(rows_by_category={"Math": [{"a": 1}, {"a": 2}], "Science": [{"a": 3}]})
    line = render_summary_line(_stats(duplicate_rows=2, skipped_sheets=1), export)
    match = SUMMARY_PATTERN.match(line)
    assert match is not None
    assert match.group(2) == "1"
    assert match.group(4) == "2"
    assert match.group(5) == "2"
    assert match.group(6) == "3"


def test_body_has_no_label():
    export = ExportResult(rows_by_category={"Math": [{"a": 1}]})
    body = render_summary_body(_stats(), export)
    assert body.startswith("sheets=2 ")
    assert "SUMMARY" not in body
    assert render_summary_line(_stats(), export) == f"SUMMARY {body}"


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, "0"),
        (2.0, "2"),
        (1.23456, "1.235"),
        (0.0001234, "0.000123"),
    ],
)
def test_format_seconds(value, expected):
    assert format_seconds(value) == expected


def test_summary_doctest():
    result = doctest.testmod(summary_module)
    assert result.failed == 0
