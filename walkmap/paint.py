"""Paint-mode state machine.

``PaintController`` turns pointer gestures into grid edits on the current
document. The active tool is one of four explicit mode values; the brush
carries its pressed flag inside the mode so "pressed" cannot exist outside
Brush.

Transitions:

    Toggle       --Click-->        flip the cell under the pointer
    Erase        --Click-->        set the cell under the pointer to Blocked
    Brush(False) --PointerDown-->  Brush(True)
    Brush(True)  --PointerMove-->  set the cell under the pointer to Walkable
    Brush(True)  --PointerUp-->    Brush(False)
    Brush(True)  --PointerCancel-> Brush(False)
    any          --ChangeMode(m)-> m   (FillAll(t) fills the grid with t)
    FillAll(t)   --ApplyFill-->    fill the grid with t again

Any other event/mode combination is a no-op. Erase is a single-cell
click tool and does not drag like Brush.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .events import (
    ApplyFill,
    ChangeMode,
    Click,
    PointerCancel,
    PointerDown,
    PointerMove,
    PointerUp,
    SetView,
    ViewportRectUpdated,
)
from .grid import CellIndex, Document, Grid, TileState
from .logging_utils import log_edit
from .mapping import CoordinateMapper, ViewportRect


@dataclass(frozen=True)
class Toggle:
    """Click flips a tile between Walkable and Blocked."""


@dataclass(frozen=True)
class Brush:
    """Drag paints tiles Walkable while the pointer is held down."""

    pressed: bool = False


@dataclass(frozen=True)
class Erase:
    """Click sets a tile to Blocked."""


@dataclass(frozen=True)
class FillAll:
    """Sets every tile to ``target`` when selected or applied."""

    target: TileState


PaintMode = Union[Toggle, Brush, Erase, FillAll]


class PaintController:
    """Applies paint-mode transitions to a document.

    The controller owns the current ``Document`` value and replaces it on
    every edit; nothing else writes to it while the session is editing.
    Mutating methods return ``True`` when the document changed.
    """

    def __init__(
        self,
        document: Document,
        *,
        viewport: Optional[ViewportRect] = None,
        mapper: Optional[CoordinateMapper] = None,
    ):
        self.document = document
        self.viewport = viewport or ViewportRect()
        self.mapper = mapper or CoordinateMapper()
        self.mode: PaintMode = Toggle()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cell_at(self, x: float, y: float) -> Optional[CellIndex]:
        return self.mapper.cell_for_document(x, y, self.viewport, self.document)

    def _replace_grid(self, grid: Grid) -> bool:
        if grid is self.document.grid:
            return False
        self.document = self.document.with_grid(grid)
        return True

    def _fill(self, target: TileState) -> bool:
        filled = Grid.filled(target)
        log_edit(f"[Fill] Grid filled with {target.value}")
        if filled == self.document.grid:
            return False
        return self._replace_grid(filled)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def change_mode(self, mode: PaintMode) -> bool:
        """Replace the current mode. Selecting FillAll fills immediately.

        An in-progress brush press is dropped without further painting.
        """

        self.mode = mode
        if isinstance(mode, FillAll):
            return self._fill(mode.target)
        return False

    def apply(self) -> bool:
        if isinstance(self.mode, FillAll):
            return self._fill(self.mode.target)
        return False

    def click(self, x: float, y: float) -> bool:
        if not isinstance(self.mode, (Toggle, Erase)):
            return False
        index = self._cell_at(x, y)
        if index is None:
            return False

        grid = self.document.grid
        if isinstance(self.mode, Toggle):
            new_state = grid.get(index).flipped()
        else:
            new_state = TileState.BLOCKED
        log_edit(f"[Click] ({index.row}, {index.col}) -> {new_state.value}")
        return self._replace_grid(grid.set(index, new_state))

    def pointer_down(self) -> bool:
        if self.mode == Brush(pressed=False):
            self.mode = Brush(pressed=True)
        return False

    def pointer_move(self, x: float, y: float) -> bool:
        if self.mode != Brush(pressed=True):
            return False
        index = self._cell_at(x, y)
        if index is None:
            return False
        return self._replace_grid(self.document.grid.set(index, TileState.WALKABLE))

    def pointer_up(self) -> bool:
        if self.mode == Brush(pressed=True):
            self.mode = Brush(pressed=False)
        return False

    def pointer_cancel(self) -> bool:
        return self.pointer_up()

    def update_viewport(self, viewport: ViewportRect) -> None:
        self.viewport = viewport

    def set_view(self, offset_x: float, offset_y: float, scale: float) -> bool:
        """Change pan/zoom. Raises ``ValueError`` for a non-positive scale."""

        previous = self.document
        self.document = previous.with_view(offset_x, offset_y, scale)
        return self.document != previous

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def handle(self, event: object) -> bool:
        """Route an inbound editing event. Unknown events are ignored."""

        if isinstance(event, PointerMove):
            return self.pointer_move(event.x, event.y)
        if isinstance(event, Click):
            return self.click(event.x, event.y)
        if isinstance(event, PointerDown):
            return self.pointer_down()
        if isinstance(event, PointerUp):
            return self.pointer_up()
        if isinstance(event, PointerCancel):
            return self.pointer_cancel()
        if isinstance(event, ChangeMode):
            return self.change_mode(event.mode)
        if isinstance(event, ApplyFill):
            return self.apply()
        if isinstance(event, SetView):
            return self.set_view(event.offset_x, event.offset_y, event.scale)
        if isinstance(event, ViewportRectUpdated):
            self.update_viewport(ViewportRect(event.x, event.y, event.width, event.height))
            return False
        return False
