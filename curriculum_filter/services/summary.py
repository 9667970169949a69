from __future__ import annotations

from ..models.processing_result import ExportResult, IngestStats

"""SUMMARY line rendering.

Format:
SUMMARY sheets={n} skipped_sheets={n} rows={n} duplicates={n}
exported_sheets={n} exported_rows={n} elapsed_sec={x}
"""

__all__ = [
    "format_seconds",
    "render_summary_body",
    "render_summary_line",
]


def format_seconds(value: float) -> str:
    """Integral values without decimals, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_body(stats: IngestStats, export: ExportResult | None = None) -> str:
    """The SUMMARY fields without the label (the log formatter adds it).

    Examples:
        >>> stats = IngestStats(sheets=1, skipped_sheets=0, input_rows=3,
        ...                     ingested_rows=3, duplicate_rows=0, elapsed_seconds=0.5)
        >>> render_summary_body(stats)
        'sheets=1 skipped_sheets=0 rows=3 duplicates=0 exported_sheets=0 exported_rows=0 elapsed_sec=0.5'
    """
    exported_sheets = export.exported_sheets if export is not None else 0
    exported_rows = export.exported_rows if export is not None else 0
    return (
        f"sheets={stats.sheets} "
        f"skipped_sheets={stats.skipped_sheets} "
        f"rows={stats.ingested_rows} "
        f"duplicates={stats.duplicate_rows} "
        f"exported_sheets={exported_sheets} "
        f"exported_rows={exported_rows} "
        f"elapsed_sec={format_seconds(stats.elapsed_seconds)}"
    )


def render_summary_line(stats: IngestStats, export: ExportResult | None = None) -> str:
    """Render the SUMMARY line for an ingestion (and optional export) run.

    Examples:
        >>> stats = IngestStats(sheets=2, skipped_sheets=1, input_rows=10,
        ...                     ingested_rows=9, duplicate_rows=1, elapsed_seconds=2.0)
        >>> render_summary_line(stats)
        'SUMMARY sheets=2 skipped_sheets=1 rows=9 duplicates=1 exported_sheets=0 exported_rows=0 elapsed_sec=2'
    """
    return f"SUMMARY {render_summary_body(stats, export)}"
