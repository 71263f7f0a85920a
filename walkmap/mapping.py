"""Pointer-pixel to grid-cell mapping under pan and zoom.

Convention: the pointer's x coordinate selects the column and its y
coordinate selects the row. The viewport rectangle is owned by the host
and passed into every call.

    worldX   = px - vx - offsetX * scale
    worldY   = py - vy - offsetY * scale
    tileSize = tileEdge * scale
    col      = floor(worldX / tileSize)
    row      = floor(worldY / tileSize)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .grid import TILE_EDGE, CellIndex, Document


@dataclass(frozen=True)
class ViewportRect:
    """Host-space rectangle the tile layer is drawn into."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True)
class CoordinateMapper:
    """Maps host pointer positions to ``CellIndex`` values."""

    tile_edge: float = TILE_EDGE

    def to_cell(
        self,
        px: float,
        py: float,
        viewport: ViewportRect,
        offset_x: float,
        offset_y: float,
        scale: float,
    ) -> Optional[CellIndex]:
        """Return the cell under (px, py), or ``None`` when no cell is hit.

        ``None`` is a normal outcome (pointer outside the grid); callers
        treat it as a no-op.
        """

        if scale <= 0:
            return None
        tile_size = self.tile_edge * scale
        world_x = px - viewport.x - offset_x * scale
        world_y = py - viewport.y - offset_y * scale
        col_f = world_x / tile_size
        row_f = world_y / tile_size
        if not (math.isfinite(col_f) and math.isfinite(row_f)):
            return None
        return CellIndex.checked(math.floor(row_f), math.floor(col_f))

    def cell_for_document(
        self, px: float, py: float, viewport: ViewportRect, document: Document
    ) -> Optional[CellIndex]:
        return self.to_cell(
            px,
            py,
            viewport,
            document.pan_offset_x,
            document.pan_offset_y,
            document.zoom_scale,
        )

    def cell_origin(
        self,
        index: CellIndex,
        viewport: ViewportRect,
        offset_x: float,
        offset_y: float,
        scale: float,
    ) -> Tuple[float, float]:
        """Top-left host pixel of ``index``; the inverse of ``to_cell``."""

        tile_size = self.tile_edge * scale
        x = viewport.x + offset_x * scale + index.col * tile_size
        y = viewport.y + offset_y * scale + index.row * tile_size
        return x, y
