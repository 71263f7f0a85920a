"""Inbound and outbound events exchanged between the host and the core.

Inbound events are delivered by the host (pointer input, toolbar actions,
open/save requests). Outbound events are published to session listeners.
All events are small frozen dataclasses so they can be logged, compared
in tests, and queued by hosts without copying concerns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:  # pragma: no cover - import only for annotations
    from .grid import Document
    from .paint import PaintMode


# ============================================================================
# Inbound: load / save
# ============================================================================

@dataclass(frozen=True)
class RequestOpenArchive:
    data: bytes


@dataclass(frozen=True)
class RequestOpenImage:
    """Open a bare background image; the grid starts all-Blocked."""

    data: bytes


@dataclass(frozen=True)
class RequestSave:
    pass


# ============================================================================
# Inbound: editing
# ============================================================================

@dataclass(frozen=True)
class Click:
    x: float
    y: float


@dataclass(frozen=True)
class PointerDown:
    pass


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerCancel:
    """Pointer left the canvas or the gesture was cancelled by the host."""


@dataclass(frozen=True)
class ChangeMode:
    mode: "PaintMode"


@dataclass(frozen=True)
class ApplyFill:
    """Re-run the active FillAll mode."""


@dataclass(frozen=True)
class SetView:
    """Replace the document's pan offset and zoom scale."""

    offset_x: float
    offset_y: float
    scale: float


@dataclass(frozen=True)
class ViewportRectUpdated:
    x: float
    y: float
    width: float
    height: float


LoadEvent = Union[RequestOpenArchive, RequestOpenImage]
EditEvent = Union[
    Click,
    PointerDown,
    PointerUp,
    PointerMove,
    PointerCancel,
    ChangeMode,
    ApplyFill,
    SetView,
    ViewportRectUpdated,
]
InboundEvent = Union[LoadEvent, RequestSave, EditEvent]


# ============================================================================
# Outbound
# ============================================================================

@dataclass(frozen=True)
class ArchiveBytes:
    data: bytes


@dataclass(frozen=True)
class DocumentReady:
    document: "Document"


@dataclass(frozen=True)
class DocumentFailed:
    reason: str


@dataclass(frozen=True)
class GridShapeMismatch:
    """The archive's tiles were unusable and were replaced by the default grid."""

    reason: str


OutboundEvent = Union[ArchiveBytes, DocumentReady, DocumentFailed, GridShapeMismatch]
