"""Formatting helpers shared by the HTML and JSON coverage reports.

Both documents format the same metrics through these functions so the
numbers they show always agree.
"""

from __future__ import annotations

import math
import os

from fuzzscope.coverage.source_analysis import SourceFileAnalysis


def percentage_str(covered: int, total: int, decimals: int = 2) -> str:
    """``covered / total`` as a percentage string with *decimals* places.

    Nothing to cover reads as fully covered.
    """
    if total == 0:
        return f"{100.0:.{decimals}f}"
    return f"{covered / total * 100:.{decimals}f}"


def percentage_int(covered: int, total: int) -> int:
    """``covered / total`` as a whole percentage, rounding half away from zero."""
    if total == 0:
        return 100
    value = covered / total * 100
    return int(math.floor(abs(value) + 0.5) * (1 if value >= 0 else -1))


def relative_path(path: str) -> str:
    """*path* relative to the working directory, or unchanged if that fails."""
    try:
        return os.path.relpath(path, os.getcwd())
    except (OSError, ValueError):
        return path


def last_active_index(file_analysis: SourceFileAnalysis) -> int:
    """Index of the last active line, 0 when no line is active."""
    last_index = 0
    for index, line in enumerate(file_analysis.lines):
        if line.is_active:
            last_index = index
    return last_index


def add(x: int, y: int) -> int:
    return x + y


def sub(x: int, y: int) -> int:
    return x - y
