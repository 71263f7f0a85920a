"""Debug helpers for inspecting a walkability grid."""

from __future__ import annotations

from typing import Dict, List, Optional

from .document import GRID_COLS, GRID_ROWS, CellIndex, Grid, TileState


_DEFAULT_TILE_SYMBOLS: Dict[TileState, str] = {
    TileState.WALKABLE: "· ",
    TileState.BLOCKED: "██",
}


def render_ascii_window(
    grid: Grid,
    center: CellIndex,
    *,
    radius: int,
    symbols: Optional[Dict[TileState, str]] = None,
) -> str:
    """Render the tiles within ``radius`` of ``center``, clipped to the grid.

    Rows are printed top to bottom (row 0 first), columns left to right,
    matching the pointer mapping where x selects the column.
    """

    radius = max(int(radius), 0)

    mapping = {**_DEFAULT_TILE_SYMBOLS}
    if symbols:
        mapping.update(symbols)

    min_row = max(0, center.row - radius)
    max_row = min(GRID_ROWS - 1, center.row + radius)
    min_col = max(0, center.col - radius)
    max_col = min(GRID_COLS - 1, center.col + radius)

    lines: List[str] = []
    for row in range(min_row, max_row + 1):
        lines.append(
            "".join(mapping[grid.get(CellIndex(row, col))] for col in range(min_col, max_col + 1))
        )
    return "\n".join(lines)


def render_ascii(grid: Grid, *, symbols: Optional[Dict[TileState, str]] = None) -> str:
    """Render the whole grid."""

    center = CellIndex(GRID_ROWS // 2, GRID_COLS // 2)
    return render_ascii_window(
        grid, center, radius=max(GRID_ROWS, GRID_COLS), symbols=symbols
    )


def describe_grid(grid: Grid) -> str:
    """One-line walkability summary, e.g. ``"120/899 walkable"``."""

    return f"{grid.count(TileState.WALKABLE)}/{GRID_ROWS * GRID_COLS} walkable"
