from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress reporting for merge runs.

Hosts observe a run through a ``(percent, status_text)`` callback. The
engine pushes every update through ``ProgressReporter`` which keeps percent
monotonically non-decreasing within a run. ``ProgressTracker`` is the
terminal host: a single tqdm bar, enabled on TTY only so CI logs are not
flooded with control sequences.
"""

__all__ = [
    "ProgressCallback",
    "ProgressReporter",
    "ProgressTracker",
    "is_tty_enabled",
    "scale_percent",
    "split_band",
]

ProgressCallback = Callable[[int, str], None]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


def scale_percent(done: int, total: int, start: int, end: int) -> int:
    """Map ``done/total`` onto the ``[start, end]`` percent band."""
    if total <= 0:
        return end
    fraction = min(max(done / total, 0.0), 1.0)
    return start + round(fraction * (end - start))


def split_band(start: int, end: int, left_rows: int, right_rows: int) -> int:
    """Boundary dividing ``[start, end]`` between two passes by their row counts.

    >>> split_band(8, 95, 10, 3000)
    8
    >>> split_band(8, 95, 3, 2)
    60
    """
    total = left_rows + right_rows
    if total <= 0:
        return start + (end - start) // 2
    return start + round((end - start) * left_rows / total)


class ProgressReporter:
    """Monotonic progress state shared between the engine and its host.

    ``report`` never lets percent go backwards within a run; ``reset``
    starts a new run (or clears the bar after a failure).
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self.callback = callback
        self.percent = 0
        self.status_text = ""

    def report(self, percent: int, status_text: str) -> None:
        percent = max(0, min(100, int(percent)))
        if percent < self.percent:
            percent = self.percent
        self.percent = percent
        self.status_text = status_text
        if self.callback is not None:
            self.callback(percent, status_text)

    def reset(self) -> None:
        self.percent = 0
        self.status_text = ""


class ProgressTracker:
    """Percent progress bar for the command-line host.

    Use ``update`` as the engine's progress callback.
    """

    def __init__(self, *, description: str = "Merging") -> None:
        self.description = description
        self.percent = 0
        self.last_text = ""

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=description,
                unit="%",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def update(self, percent: int, status_text: str) -> None:
        """Move the bar to ``percent`` and show ``status_text`` as postfix."""
        self.last_text = status_text
        step = percent - self.percent
        if step < 0:
            # a reset after failure; tqdm bars only move forward
            step = 0
        self.percent = max(self.percent, percent)

        if self.enabled and self.pbar is not None:
            if step:
                self.pbar.update(step)
            self.pbar.set_postfix_str(status_text)

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
