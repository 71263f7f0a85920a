"""Grid data model for walkmap documents."""

from .document import (
    GRID_COLS,
    GRID_ROWS,
    TILE_EDGE,
    CellIndex,
    Document,
    Grid,
    ImageDimensions,
    TileState,
)
from .schemas import MapMetadata
from .helpers import describe_grid, render_ascii, render_ascii_window

__all__ = [
    "GRID_ROWS",
    "GRID_COLS",
    "TILE_EDGE",
    "CellIndex",
    "Document",
    "Grid",
    "ImageDimensions",
    "TileState",
    "MapMetadata",
    "describe_grid",
    "render_ascii",
    "render_ascii_window",
]
