from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.processing_result import BatchProgress

"""Progress display service with tqdm (TTY only).

Feeds a single tqdm bar from the BatchProgress items yielded by ingestion
and export runs. In non-TTY environments (CI, pipes) the bar is disabled to
avoid ANSI control sequence spam.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """tqdm progress bar driven by BatchProgress callbacks.

    Usable directly as the ``on_batch`` callback of ``ingest_workbook`` and
    ``project_selection``.
    """

    def __init__(self, total: int, *, description: str = "Ingesting", unit: str = "row") -> None:
        self.total = total
        self.description = description
        self.unit = unit
        self.processed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def __call__(self, progress: BatchProgress) -> None:
        self.update(progress)

    def update(self, progress: BatchProgress) -> None:
        """Advance to ``progress.processed`` and show the current sheet."""
        step = progress.processed - self.processed
        self.processed = progress.processed
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({progress.sheet_name})")
            if step > 0:
                self.pbar.update(step)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(self.description)
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
