"""
Fit a fixed, ordered column schema into the width the terminal offers.

Columns are taken strictly left to right: the first column that would overflow
ends the visible set, even if a later column is narrow enough to fit. Rows are
always kept at full schema arity and only projected for display, so a resize
can widen the table again without losing cells.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

Row = Tuple[str, ...]

# Panel top border, header line, header rule, panel bottom border.
FRAME_OVERHEAD = 4


@dataclass(frozen=True)
class Column:
    title: str
    width: int

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError(f"column {self.title!r} must have a positive width, got {self.width}")


def fit_columns(columns: Sequence[Column], available_width: int) -> Tuple[Column, ...]:
    used = 0
    visible: List[Column] = []
    for col in columns:
        if used + col.width > available_width:
            break
        used += col.width
        visible.append(col)
    return tuple(visible)


def project_row(row: Sequence[str], n_visible: int) -> Row:
    return tuple(row[:n_visible])


def project_rows(rows: Sequence[Sequence[str]], columns: Sequence[Column], n_visible: int) -> List[Row]:
    """
    Cut every row down to its first `n_visible` cells.

    A row whose length differs from the full schema is a formatter bug; it is
    rejected here rather than silently rendered with shifted cells.
    """
    n_schema = len(columns)
    out: List[Row] = []
    for i, row in enumerate(rows):
        if len(row) != n_schema:
            raise ValueError(f"row {i} has {len(row)} cells, schema has {n_schema} columns")
        out.append(project_row(row, n_visible))
    return out


def frame_height(n_rows: int, n_visible: int) -> int:
    # A table with no visible columns collapses to a one-line placeholder.
    if n_visible <= 0:
        return 1
    return n_rows + FRAME_OVERHEAD
