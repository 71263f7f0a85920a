"""
Archive encode/decode for walkmap documents.

An archive is a zip container holding exactly two entries:

- ``map.json``: ``{"imageOffsetX", "imageOffsetY", "canvasScale", "tiles"}``
- ``map.png``: the background image bytes, stored unmodified

Entry names and JSON keys are wire format. Only this pair is read; older
``map.jpg`` archives are not supported.

Validation policy is deliberately asymmetric:

- Scalars are strict. A missing or non-numeric offset/scale raises
  ``MetadataParseError`` and the load is aborted.
- Tiles are lenient. Any shape or token problem replaces the whole grid
  with the default all-Blocked grid; the problem is logged and reported
  as a ``GridShapeMismatch`` but never raised.

The zip container and the image decoder are pluggable collaborators
(``ArchiveContainer`` and ``ImageDecoder``) so hosts and tests can swap
them. Defaults use ``zipfile`` and Pillow.

Usage:
    codec = ArchiveCodec()
    data = codec.save(document)
    document = await codec.load(data)
"""

from __future__ import annotations

import asyncio
import io
import json
import zipfile
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from .config import Config
from .grid import Document, Grid, ImageDimensions, MapMetadata, describe_grid
from .logging_utils import log_io, log_warning


METADATA_ENTRY = "map.json"
IMAGE_ENTRY = "map.png"
BARE_IMAGE_METADATA = "{}"
"""Metadata text held for a bare image load; parsed with defaults."""


# =============================
# Module-level Exceptions
# =============================

class DocumentLoadError(Exception):
    """Base class for failures that abort a document load."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ArchiveReadError(DocumentLoadError):
    """Archive is not a readable container or lacks a required entry."""


class MetadataParseError(DocumentLoadError):
    """``map.json`` is malformed or a required scalar field is missing/invalid."""


class ImageDecodeError(DocumentLoadError):
    """The background image could not be decoded."""


def _format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as ``field: message`` using the wire key names."""

    issues = []
    for err in error.errors(include_url=False):
        loc = ".".join(str(part) for part in err.get("loc", [])) or "root"
        issues.append(f"{loc}: {err.get('msg', 'validation error')}")
    return "; ".join(issues) or "metadata did not match the expected schema"


# =============================
# Container
# =============================

class ArchiveContainer(ABC):
    """Reads and writes named entries of an archive blob."""

    @abstractmethod
    def read_entries(self, data: bytes, names: Iterable[str]) -> Dict[str, bytes]:
        """Return the bytes of each requested entry.

        Raises:
            ArchiveReadError: If the blob is unreadable or an entry is missing
        """

    @abstractmethod
    def write_entries(self, entries: Dict[str, bytes]) -> bytes:
        """Build an archive blob containing exactly ``entries``."""


class ZipArchiveContainer(ArchiveContainer):
    """``zipfile``-backed container."""

    def __init__(self, compression: Optional[str] = None):
        compression = compression or Config.ARCHIVE_COMPRESSION
        if compression == "stored":
            self.compression = zipfile.ZIP_STORED
        elif compression == "deflated":
            self.compression = zipfile.ZIP_DEFLATED
        else:
            raise ValueError(f"Unknown archive compression {compression!r}")

    def read_entries(self, data: bytes, names: Iterable[str]) -> Dict[str, bytes]:
        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
                present = set(zf.namelist())
                entries: Dict[str, bytes] = {}
                for name in names:
                    if name not in present:
                        raise ArchiveReadError(f"archive entry '{name}' is missing")
                    entries[name] = zf.read(name)
                return entries
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as exc:
            raise ArchiveReadError(f"archive could not be read: {exc}") from exc

    def write_entries(self, entries: Dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self.compression) as zf:
            for name, payload in entries.items():
                zf.writestr(name, payload)
        return buffer.getvalue()


# =============================
# Image decoding
# =============================

class ImageDecoder(ABC):
    """Decodes image bytes into pixel dimensions."""

    @abstractmethod
    async def decode(self, data: bytes) -> ImageDimensions:
        """Return the image size.

        Raises:
            ImageDecodeError: If the bytes are not a decodable image
        """


class PillowImageDecoder(ImageDecoder):
    """Pillow-backed decoder. Decoding runs in a worker thread."""

    def __init__(self, max_pixels: Optional[int] = None):
        self.max_pixels = max_pixels or Config.MAX_IMAGE_PIXELS

    def decode_sync(self, data: bytes) -> ImageDimensions:
        try:
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
                dimensions = ImageDimensions(width=width, height=height)
                if width * height > self.max_pixels:
                    raise ImageDecodeError(
                        f"image is {width}x{height}, above the {self.max_pixels} pixel limit"
                    )
                # Image.open only reads the header; load() catches truncated data.
                img.load()
        except ImageDecodeError:
            raise
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            EOFError,
            ValueError,
        ) as exc:
            raise ImageDecodeError(f"image could not be decoded: {exc}") from exc
        return dimensions

    async def decode(self, data: bytes) -> ImageDimensions:
        return await asyncio.to_thread(self.decode_sync, data)


# =============================
# Codec
# =============================

@dataclass(frozen=True)
class DecodedDocument:
    """A decoded document plus the grid fallback reason, if one happened."""

    document: Document
    grid_mismatch: Optional[str] = None


class ArchiveCodec:
    """Serializes documents to archive bytes and back."""

    def __init__(
        self,
        container: Optional[ArchiveContainer] = None,
        decoder: Optional[ImageDecoder] = None,
    ):
        self.container = container or ZipArchiveContainer()
        self.decoder = decoder or PillowImageDecoder()

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def encode_metadata(self, document: Document) -> str:
        metadata = MapMetadata.from_document_fields(
            offset_x=document.pan_offset_x,
            offset_y=document.pan_offset_y,
            scale=document.zoom_scale,
            grid=document.grid,
        )
        return json.dumps(metadata.to_wire())

    def save(self, document: Document) -> bytes:
        """Build the two-entry archive for ``document``."""

        data = self.container.write_entries(
            {
                METADATA_ENTRY: self.encode_metadata(document).encode("utf-8"),
                IMAGE_ENTRY: document.image_bytes,
            }
        )
        log_io(f"[Archive] Saved {len(data)} bytes ({describe_grid(document.grid)})")
        return data

    def save_file(self, document: Document, path: Path) -> Path:
        path = Path(path)
        path.write_bytes(self.save(document))
        return path

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def read_archive(self, data: bytes) -> Tuple[str, bytes]:
        """Extract ``(metadata_text, image_bytes)`` from an archive blob."""

        entries = self.container.read_entries(data, (METADATA_ENTRY, IMAGE_ENTRY))
        try:
            metadata_text = entries[METADATA_ENTRY].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ArchiveReadError(f"'{METADATA_ENTRY}' is not valid UTF-8") from exc
        return metadata_text, entries[IMAGE_ENTRY]

    def parse_metadata(self, text: str, *, allow_defaults: bool = False) -> MapMetadata:
        """Parse ``map.json`` text.

        Args:
            text: Raw JSON text
            allow_defaults: Fill missing scalars with pan (0, 0), scale 1 and an
                all-Blocked grid; used when opening a bare image.

        Raises:
            MetadataParseError: On invalid JSON or a missing/invalid scalar
        """

        try:
            raw = json.loads(text)
        except (ValueError, RecursionError) as exc:
            raise MetadataParseError(f"'{METADATA_ENTRY}' is not valid JSON: {exc}") from exc

        if not isinstance(raw, dict):
            raise MetadataParseError(f"'{METADATA_ENTRY}' must contain a JSON object")

        if allow_defaults:
            raw = {
                "imageOffsetX": 0.0,
                "imageOffsetY": 0.0,
                "canvasScale": 1.0,
                "tiles": Grid.default().to_tokens(),
                **raw,
            }

        try:
            return MapMetadata.model_validate(raw)
        except ValidationError as exc:
            raise MetadataParseError(
                f"'{METADATA_ENTRY}' is invalid: {_format_validation_error(exc)}"
            ) from exc

    def decode_document(
        self,
        metadata_text: str,
        image_bytes: bytes,
        image_size: ImageDimensions,
        *,
        bare_image: bool = False,
    ) -> DecodedDocument:
        """Combine held metadata text and decoded image size into a document."""

        metadata = self.parse_metadata(metadata_text, allow_defaults=bare_image)
        grid, mismatch = metadata.grid()
        if mismatch is not None:
            log_warning(f"[Archive] Tiles unusable ({mismatch}); using an all-Blocked grid")

        document = Document(
            grid=grid,
            pan_offset_x=metadata.image_offset_x,
            pan_offset_y=metadata.image_offset_y,
            zoom_scale=metadata.canvas_scale,
            image_bytes=image_bytes,
            image_size=image_size,
        )
        return DecodedDocument(document=document, grid_mismatch=mismatch)

    async def load(self, data: bytes) -> Document:
        """Decode an archive blob into a document.

        Raises:
            ArchiveReadError: Unreadable archive or missing entry
            MetadataParseError: Invalid metadata scalars
            ImageDecodeError: Background image could not be decoded
        """

        metadata_text, image_bytes = self.read_archive(data)
        # Fail on bad scalars before spending time on the image.
        self.parse_metadata(metadata_text)
        image_size = await self.decoder.decode(image_bytes)
        return self.decode_document(metadata_text, image_bytes, image_size).document

    async def load_file(self, path: Path) -> Document:
        data = await asyncio.to_thread(Path(path).read_bytes)
        return await self.load(data)
