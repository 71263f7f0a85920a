"""
Document session lifecycle.

The session is the host-facing entry point. It owns the current document
(through a ``PaintController``), runs loads, answers save requests, and
publishes outbound events to listeners.

States:

    Unloaded --open--> AwaitingImageDecode --decoded--> Editing
                                |                          |
                                +------failure------> Failed
    Editing/Failed --open--> AwaitingImageDecode   (previous document dropped)

Loads have three asynchronous steps: reading bytes (file helpers),
archive decompression (worker thread) and image decoding (decoder
coroutine). Each load takes a new generation number; a step that
completes after a newer load has started is discarded, so a slow earlier
load can never overwrite a newer document.

Pointer and toolbar events are handled synchronously on the caller's
thread, one at a time, in arrival order. ``save()`` only reads the
resident document and never waits for a pending load.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

from .archive import (
    BARE_IMAGE_METADATA,
    ArchiveCodec,
    DocumentLoadError,
    ImageDecodeError,
)
from .events import (
    ArchiveBytes,
    DocumentFailed,
    DocumentReady,
    GridShapeMismatch,
    OutboundEvent,
    RequestOpenArchive,
    RequestOpenImage,
    RequestSave,
    ViewportRectUpdated,
)
from .grid import Document, describe_grid
from .logging_utils import log_error, log_info, log_io, log_success
from .mapping import CoordinateMapper, ViewportRect
from .paint import PaintController, PaintMode


SessionListener = Callable[[OutboundEvent], None]


class SessionNotEditingError(RuntimeError):
    """Raised when an operation needs a loaded document and none is resident."""


# ============================================================================
# States
# ============================================================================

@dataclass(frozen=True)
class Unloaded:
    pass


@dataclass(frozen=True)
class AwaitingImageDecode:
    metadata_text: str
    image_bytes: bytes
    generation: int
    bare_image: bool = False


@dataclass(frozen=True)
class Editing:
    document: Document


@dataclass(frozen=True)
class Failed:
    reason: str
    error: Optional[DocumentLoadError] = None


SessionState = Union[Unloaded, AwaitingImageDecode, Editing, Failed]


class DocumentSession:
    """Top-level load/edit/save lifecycle for one editor window.

    Args:
        codec: Archive codec (defaults to zip container + Pillow decoder)
        mapper: Coordinate mapper handed to each new PaintController
        listeners: Callables invoked with every outbound event. Listener
            failures are logged and do not affect the session.
    """

    def __init__(
        self,
        codec: Optional[ArchiveCodec] = None,
        *,
        mapper: Optional[CoordinateMapper] = None,
        listeners: Optional[List[SessionListener]] = None,
    ):
        self.codec = codec or ArchiveCodec()
        self.mapper = mapper or CoordinateMapper()
        self.listeners: List[SessionListener] = list(listeners or [])

        self._state: SessionState = Unloaded()
        self._controller: Optional[PaintController] = None
        # Host viewport survives reloads; each new controller starts from it.
        self._viewport = ViewportRect()
        self._generation = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._controller is not None:
            return Editing(self._controller.document)
        return self._state

    @property
    def document(self) -> Optional[Document]:
        return self._controller.document if self._controller is not None else None

    @property
    def controller(self) -> Optional[PaintController]:
        return self._controller

    @property
    def mode(self) -> Optional[PaintMode]:
        return self._controller.mode if self._controller is not None else None

    @property
    def viewport(self) -> ViewportRect:
        return self._viewport

    @property
    def generation(self) -> int:
        return self._generation

    def add_listener(self, listener: SessionListener) -> None:
        self.listeners.append(listener)

    def _emit(self, event: OutboundEvent) -> None:
        for listener in self.listeners:
            try:
                listener(event)
            except Exception as exc:
                log_error(f"[Session] Listener failed on {type(event).__name__}: {exc}")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _begin_load(self) -> int:
        self._generation += 1
        return self._generation

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            log_info(f"[Session] Discarding stale load #{generation} (current #{self._generation})")
            return True
        return False

    def _fail(self, generation: int, error: DocumentLoadError) -> None:
        if self._is_stale(generation):
            return None
        self._controller = None
        self._state = Failed(reason=error.reason, error=error)
        log_error(f"[Session] Load #{generation} failed: {error.reason}")
        self._emit(DocumentFailed(reason=error.reason))
        return None

    async def open_archive(self, data: bytes) -> Optional[Document]:
        """Load an archive blob and enter Editing.

        Returns the new document, or ``None`` when the load failed (state is
        ``Failed`` and ``DocumentFailed`` was emitted) or was superseded by a
        newer load.
        """

        generation = self._begin_load()
        log_io(f"[Session] Opening archive #{generation} ({len(data)} bytes)")
        try:
            metadata_text, image_bytes = await asyncio.to_thread(self.codec.read_archive, data)
        except DocumentLoadError as exc:
            return self._fail(generation, exc)
        if self._is_stale(generation):
            return None
        return await self._decode_and_enter(
            generation, metadata_text, image_bytes, bare_image=False
        )

    async def open_image(self, data: bytes) -> Optional[Document]:
        """Start a new all-Blocked document on top of a bare image."""

        generation = self._begin_load()
        log_io(f"[Session] Opening image #{generation} ({len(data)} bytes)")
        return await self._decode_and_enter(
            generation, BARE_IMAGE_METADATA, data, bare_image=True
        )

    async def open_archive_file(self, path: Path) -> Optional[Document]:
        data = await asyncio.to_thread(Path(path).read_bytes)
        return await self.open_archive(data)

    async def open_image_file(self, path: Path) -> Optional[Document]:
        data = await asyncio.to_thread(Path(path).read_bytes)
        return await self.open_image(data)

    async def _decode_and_enter(
        self,
        generation: int,
        metadata_text: str,
        image_bytes: bytes,
        *,
        bare_image: bool,
    ) -> Optional[Document]:
        # Leaving Editing drops the previous document.
        self._controller = None
        self._state = AwaitingImageDecode(
            metadata_text=metadata_text,
            image_bytes=image_bytes,
            generation=generation,
            bare_image=bare_image,
        )

        try:
            image_size = await self.codec.decoder.decode(image_bytes)
        except DocumentLoadError as exc:
            return self._fail(generation, exc)
        except Exception as exc:
            # Host decoders may raise anything; report it as a decode failure.
            error = ImageDecodeError(f"image could not be decoded: {exc}")
            error.__cause__ = exc
            return self._fail(generation, error)
        if self._is_stale(generation):
            return None

        # Join point: held metadata + decoded size become one document.
        try:
            decoded = self.codec.decode_document(
                metadata_text, image_bytes, image_size, bare_image=bare_image
            )
        except DocumentLoadError as exc:
            return self._fail(generation, exc)

        document = decoded.document
        self._controller = PaintController(
            document, viewport=self._viewport, mapper=self.mapper
        )
        self._state = Editing(document)
        log_success(
            f"[Session] Load #{generation} ready: {image_size.width}x{image_size.height} image, "
            f"{describe_grid(document.grid)}"
        )
        if decoded.grid_mismatch is not None:
            self._emit(GridShapeMismatch(reason=decoded.grid_mismatch))
        self._emit(DocumentReady(document=document))
        return document

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(self) -> bytes:
        """Encode the resident document. Does not change session state.

        Raises:
            SessionNotEditingError: If no document is loaded
        """

        if self._controller is None:
            raise SessionNotEditingError(
                f"Cannot save while session is {type(self._state).__name__}"
            )
        snapshot = self._controller.document
        data = self.codec.save(snapshot)
        self._emit(ArchiveBytes(data=data))
        return data

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def handle(self, event: object) -> bool:
        """Handle a synchronous inbound event.

        Editing events are ignored outside Editing. Returns ``True`` when the
        document changed.

        Raises:
            TypeError: For load requests, which must go through ``dispatch``
        """

        if isinstance(event, (RequestOpenArchive, RequestOpenImage)):
            raise TypeError(f"{type(event).__name__} is asynchronous; use dispatch()")
        if isinstance(event, RequestSave):
            self.save()
            return False
        if isinstance(event, ViewportRectUpdated):
            self._viewport = ViewportRect(event.x, event.y, event.width, event.height)
        if self._controller is None:
            return False
        return self._controller.handle(event)

    async def dispatch(self, event: object) -> bool:
        """Handle any inbound event, awaiting load requests."""

        if isinstance(event, RequestOpenArchive):
            return await self.open_archive(event.data) is not None
        if isinstance(event, RequestOpenImage):
            return await self.open_image(event.data) is not None
        return self.handle(event)
