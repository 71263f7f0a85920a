"""Pydantic schema for the ``map.json`` archive entry.

The scalar fields are strict: a missing, non-numeric, boolean or
non-finite value fails validation and aborts the load. ``tiles`` is kept
as raw JSON and resolved through ``Grid.from_rows_checked``, which never
fails and substitutes the default grid on any shape problem.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .document import Grid


class MapMetadata(BaseModel):
    """Wire form of the metadata entry. JSON keys use the archive's camelCase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    image_offset_x: float = Field(..., alias="imageOffsetX", description="Pan offset X (pre-scale px)")
    image_offset_y: float = Field(..., alias="imageOffsetY", description="Pan offset Y (pre-scale px)")
    canvas_scale: float = Field(..., alias="canvasScale", description="Zoom multiplier, > 0")
    # Raw nested token lists; shape is checked leniently by grid().
    tiles: Any = Field(None, description="ROWS x COLS nested list of tile tokens")

    @field_validator("image_offset_x", "image_offset_y", "canvas_scale", mode="before")
    @classmethod
    def _require_json_number(cls, value: Any) -> float:
        # bool is an int subclass; JSON true/false is not a coordinate.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"expected a number, got {type(value).__name__}")
        try:
            value = float(value)
        except OverflowError as exc:
            raise ValueError("number is too large") from exc
        if not math.isfinite(value):
            raise ValueError("expected a finite number")
        return value

    @field_validator("canvas_scale")
    @classmethod
    def _positive_scale(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("canvasScale must be > 0")
        return value

    def grid(self) -> Tuple[Grid, Optional[str]]:
        """Resolve ``tiles`` into a grid plus the fallback reason (if any)."""

        if self.tiles is None:
            return Grid.default(), "tiles entry missing"
        return Grid.from_rows_checked(self.tiles)

    @classmethod
    def from_document_fields(
        cls, *, offset_x: float, offset_y: float, scale: float, grid: Grid
    ) -> "MapMetadata":
        return cls(
            image_offset_x=offset_x,
            image_offset_y=offset_y,
            canvas_scale=scale,
            tiles=grid.to_tokens(),
        )

    def to_wire(self) -> Dict[str, Any]:
        """Dict with the exact archive key names, in archive order."""

        return {
            "imageOffsetX": self.image_offset_x,
            "imageOffsetY": self.image_offset_y,
            "canvasScale": self.canvas_scale,
            "tiles": self.tiles,
        }
