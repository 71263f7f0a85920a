"""Walkability grid and the document it belongs to.

The grid has a fixed shape (``GRID_ROWS`` x ``GRID_COLS``) that is part of
the archive wire format, so it is a module constant rather than something
read from configuration. Cells are addressed only through ``CellIndex``,
whose constructor rejects out-of-range coordinates; ``Grid.get``/``Grid.set``
therefore never see a raw integer pair.

Grids and documents are immutable values. Every edit returns a new object,
which lets the session snapshot the current document for saving without
copying.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple


GRID_ROWS = 29
GRID_COLS = 31
TILE_EDGE = 16
"""Edge length of one tile in pixels before zoom is applied."""


class TileState(Enum):
    """Walkability of a single tile. Values are the archive tokens."""

    WALKABLE = "Walkable"
    BLOCKED = "NotWalkable"

    @classmethod
    def from_token(cls, token: str) -> "TileState":
        """Decode a wire token: only the exact string ``"Walkable"`` is walkable."""

        return cls.WALKABLE if token == cls.WALKABLE.value else cls.BLOCKED

    def flipped(self) -> "TileState":
        return TileState.BLOCKED if self is TileState.WALKABLE else TileState.WALKABLE


@dataclass(frozen=True)
class CellIndex:
    """Bounds-checked (row, col) address of a grid cell.

    Direct construction raises ``IndexError`` for out-of-range values; use
    ``CellIndex.checked`` when out-of-range input is an expected no-op
    (pointer mapping).
    """

    row: int
    col: int

    def __post_init__(self) -> None:
        if not (0 <= self.row < GRID_ROWS and 0 <= self.col < GRID_COLS):
            raise IndexError(
                f"cell ({self.row}, {self.col}) outside {GRID_ROWS}x{GRID_COLS} grid"
            )

    @classmethod
    def checked(cls, row: int, col: int) -> Optional["CellIndex"]:
        """Return the index, or ``None`` when (row, col) falls outside the grid."""

        if 0 <= row < GRID_ROWS and 0 <= col < GRID_COLS:
            return cls(row, col)
        return None

    @classmethod
    def all(cls) -> Iterator["CellIndex"]:
        """Yield every index in row-major order."""

        for row in range(GRID_ROWS):
            for col in range(GRID_COLS):
                yield cls(row, col)

    @property
    def flat(self) -> int:
        return self.row * GRID_COLS + self.col


def _uniform_cells(state: TileState) -> Tuple[TileState, ...]:
    return (state,) * (GRID_ROWS * GRID_COLS)


@dataclass(frozen=True)
class Grid:
    """Fixed-size walkability grid stored as a flat row-major tuple."""

    cells: Tuple[TileState, ...] = field(
        default_factory=lambda: _uniform_cells(TileState.BLOCKED)
    )

    def __post_init__(self) -> None:
        if len(self.cells) != GRID_ROWS * GRID_COLS:
            raise ValueError(
                f"grid needs {GRID_ROWS * GRID_COLS} cells, got {len(self.cells)}"
            )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def default(cls) -> "Grid":
        """The all-Blocked grid used for new documents and load fallback."""

        return cls(_uniform_cells(TileState.BLOCKED))

    @classmethod
    def filled(cls, state: TileState) -> "Grid":
        return cls(_uniform_cells(state))

    @classmethod
    def from_rows(cls, rows: Any) -> "Grid":
        """Build a grid from nested rows, falling back to the default grid.

        Any structural problem discards the whole input; there is no partial
        merge. See ``from_rows_checked`` for the fallback reason.
        """

        grid, _ = cls.from_rows_checked(rows)
        return grid

    @classmethod
    def from_rows_checked(cls, rows: Any) -> Tuple["Grid", Optional[str]]:
        """Build a grid from nested rows and report why a fallback happened.

        Accepted entries are ``TileState`` members or strings. Strings follow
        the allowlist in ``TileState.from_token`` (unknown strings are
        Blocked). Anything else (numbers, nulls, nested lists) is treated as
        a structural violation.

        Returns:
            ``(grid, None)`` on success, ``(Grid.default(), reason)`` otherwise.
        """

        if not isinstance(rows, (list, tuple)):
            return cls.default(), f"tiles must be a list of rows, got {type(rows).__name__}"
        if len(rows) != GRID_ROWS:
            return cls.default(), f"expected {GRID_ROWS} rows, got {len(rows)}"

        cells: List[TileState] = []
        for row_number, row in enumerate(rows):
            if not isinstance(row, (list, tuple)):
                return cls.default(), f"row {row_number} is not a list"
            if len(row) != GRID_COLS:
                return cls.default(), (
                    f"row {row_number} has {len(row)} tiles, expected {GRID_COLS}"
                )
            for col_number, token in enumerate(row):
                if isinstance(token, TileState):
                    cells.append(token)
                elif isinstance(token, str):
                    cells.append(TileState.from_token(token))
                else:
                    return cls.default(), (
                        f"tile ({row_number}, {col_number}) has unrecognized token {token!r}"
                    )
        return cls(tuple(cells)), None

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, index: CellIndex) -> TileState:
        return self.cells[index.flat]

    def set(self, index: CellIndex, state: TileState) -> "Grid":
        """Return a grid with exactly ``index`` changed to ``state``."""

        if self.cells[index.flat] is state:
            return self
        cells = list(self.cells)
        cells[index.flat] = state
        return Grid(tuple(cells))

    def to_rows(self) -> List[List[TileState]]:
        return [
            list(self.cells[row * GRID_COLS:(row + 1) * GRID_COLS])
            for row in range(GRID_ROWS)
        ]

    def to_tokens(self) -> List[List[str]]:
        """Row-major wire tokens (``"Walkable"`` / ``"NotWalkable"``)."""

        return [[state.value for state in row] for row in self.to_rows()]

    def count(self, state: TileState) -> int:
        return self.cells.count(state)


@dataclass(frozen=True)
class ImageDimensions:
    """Pixel size of the decoded background image."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"image dimensions must be positive, got {self.width}x{self.height}")


def _validate_view(offset_x: float, offset_y: float, scale: float) -> None:
    if not (math.isfinite(offset_x) and math.isfinite(offset_y)):
        raise ValueError(f"pan offset must be finite, got ({offset_x}, {offset_y})")
    if not math.isfinite(scale) or scale <= 0:
        raise ValueError(f"zoom scale must be a finite value > 0, got {scale}")


@dataclass(frozen=True)
class Document:
    """Everything the editor persists: grid, view transform, background image."""

    grid: Grid
    pan_offset_x: float
    pan_offset_y: float
    zoom_scale: float
    image_bytes: bytes
    image_size: ImageDimensions

    def __post_init__(self) -> None:
        _validate_view(self.pan_offset_x, self.pan_offset_y, self.zoom_scale)

    @classmethod
    def blank(cls, image_bytes: bytes, image_size: ImageDimensions) -> "Document":
        """All-Blocked document with no pan and unit zoom."""

        return cls(
            grid=Grid.default(),
            pan_offset_x=0.0,
            pan_offset_y=0.0,
            zoom_scale=1.0,
            image_bytes=image_bytes,
            image_size=image_size,
        )

    def with_grid(self, grid: Grid) -> "Document":
        if grid is self.grid:
            return self
        return replace(self, grid=grid)

    def with_view(self, offset_x: float, offset_y: float, scale: float) -> "Document":
        return replace(
            self,
            pan_offset_x=float(offset_x),
            pan_offset_y=float(offset_y),
            zoom_scale=float(scale),
        )
