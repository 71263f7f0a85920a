"""
Walkmap - editing core for a 2D walkability tile-map editor.

A fixed-size walkability grid drawn over a background image, edited with
pointer input and saved as a two-entry archive (``map.json`` + ``map.png``).

No rendering, no file dialogs. The host delivers pointer and open/save
events and draws whatever it likes from the resulting document.
"""

__version__ = "0.1.0"

# Grid data model
from .grid import (
    GRID_ROWS,
    GRID_COLS,
    TILE_EDGE,
    CellIndex,
    Document,
    Grid,
    ImageDimensions,
    TileState,
    MapMetadata,
    describe_grid,
    render_ascii,
    render_ascii_window,
)

# Pointer mapping and paint modes
from .mapping import CoordinateMapper, ViewportRect
from .paint import PaintController, PaintMode, Toggle, Brush, Erase, FillAll

# Archive I/O
from .archive import (
    METADATA_ENTRY,
    IMAGE_ENTRY,
    ArchiveCodec,
    ArchiveContainer,
    ZipArchiveContainer,
    ImageDecoder,
    PillowImageDecoder,
    DocumentLoadError,
    ArchiveReadError,
    MetadataParseError,
    ImageDecodeError,
)

# Session lifecycle
from .session import (
    DocumentSession,
    SessionNotEditingError,
    Unloaded,
    AwaitingImageDecode,
    Editing,
    Failed,
)
from .events import (
    RequestOpenArchive,
    RequestOpenImage,
    RequestSave,
    Click,
    PointerDown,
    PointerUp,
    PointerMove,
    PointerCancel,
    ChangeMode,
    ApplyFill,
    SetView,
    ViewportRectUpdated,
    ArchiveBytes,
    DocumentReady,
    DocumentFailed,
    GridShapeMismatch,
)
from .config import Config

__all__ = [
    # Grid
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
    # Mapping / painting
    "CoordinateMapper",
    "ViewportRect",
    "PaintController",
    "PaintMode",
    "Toggle",
    "Brush",
    "Erase",
    "FillAll",
    # Archive
    "METADATA_ENTRY",
    "IMAGE_ENTRY",
    "ArchiveCodec",
    "ArchiveContainer",
    "ZipArchiveContainer",
    "ImageDecoder",
    "PillowImageDecoder",
    "DocumentLoadError",
    "ArchiveReadError",
    "MetadataParseError",
    "ImageDecodeError",
    # Session
    "DocumentSession",
    "SessionNotEditingError",
    "Unloaded",
    "AwaitingImageDecode",
    "Editing",
    "Failed",
    # Events
    "RequestOpenArchive",
    "RequestOpenImage",
    "RequestSave",
    "Click",
    "PointerDown",
    "PointerUp",
    "PointerMove",
    "PointerCancel",
    "ChangeMode",
    "ApplyFill",
    "SetView",
    "ViewportRectUpdated",
    "ArchiveBytes",
    "DocumentReady",
    "DocumentFailed",
    "GridShapeMismatch",
    # Config
    "Config",
]
