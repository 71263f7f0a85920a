"""Tests for the document session lifecycle."""

import asyncio
import io
import json
import zipfile

import pytest
from PIL import Image

from walkmap.archive import (
    IMAGE_ENTRY,
    METADATA_ENTRY,
    ArchiveCodec,
    ArchiveReadError,
    ImageDecodeError,
    ImageDecoder,
    MetadataParseError,
)
from walkmap.events import (
    ArchiveBytes,
    ChangeMode,
    Click,
    DocumentFailed,
    DocumentReady,
    GridShapeMismatch,
    PointerDown,
    PointerMove,
    PointerUp,
    RequestOpenArchive,
    RequestOpenImage,
    RequestSave,
    ViewportRectUpdated,
)
from walkmap.grid import GRID_COLS, GRID_ROWS, CellIndex, Grid, ImageDimensions, TileState
from walkmap.paint import Brush, FillAll, Toggle
from walkmap.session import (
    AwaitingImageDecode,
    DocumentSession,
    Editing,
    Failed,
    SessionNotEditingError,
    Unloaded,
)


def make_png(width: int = 48, height: int = 32) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height)).save(buffer, format="PNG")
    return buffer.getvalue()


def make_archive(image: bytes, **metadata) -> bytes:
    payload = {
        "imageOffsetX": 0.0,
        "imageOffsetY": 0.0,
        "canvasScale": 1.0,
        "tiles": [["NotWalkable"] * GRID_COLS for _ in range(GRID_ROWS)],
    }
    payload.update(metadata)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr(METADATA_ENTRY, json.dumps(payload))
        zf.writestr(IMAGE_ENTRY, image)
    return buffer.getvalue()


class GatedDecoder(ImageDecoder):
    """Decoder whose completions are released manually by the test."""

    def __init__(self, sizes):
        self.sizes = sizes
        self.gates = {data: asyncio.Event() for data in sizes}
        self.started = []

    async def decode(self, data: bytes) -> ImageDimensions:
        self.started.append(data)
        await self.gates[data].wait()
        size = self.sizes[data]
        if size is None:
            raise ImageDecodeError("gate says no")
        return size


async def wait_until_started(decoder: GatedDecoder, data: bytes) -> None:
    while data not in decoder.started:
        await asyncio.sleep(0)


def recording_session(codec=None):
    events = []
    session = DocumentSession(codec, listeners=[events.append])
    return session, events


def test_new_session_is_unloaded():
    session = DocumentSession()
    assert session.state == Unloaded()
    assert session.document is None
    assert session.mode is None


@pytest.mark.asyncio
async def test_open_archive_enters_editing_in_toggle_mode():
    session, events = recording_session()

    document = await session.open_archive(
        make_archive(make_png(40, 20), imageOffsetX=10.5, imageOffsetY=-3.25, canvasScale=2.0)
    )

    assert document is not None
    assert session.state == Editing(document)
    assert session.mode == Toggle()
    assert (document.pan_offset_x, document.pan_offset_y, document.zoom_scale) == (10.5, -3.25, 2.0)
    assert document.image_size == ImageDimensions(40, 20)
    assert events == [DocumentReady(document=document)]


@pytest.mark.asyncio
async def test_open_image_starts_blank_document():
    session, events = recording_session()
    image = make_png(16, 16)

    document = await session.open_image(image)

    assert document.grid == Grid.default()
    assert (document.pan_offset_x, document.pan_offset_y, document.zoom_scale) == (0.0, 0.0, 1.0)
    assert document.image_bytes == image
    assert [type(event) for event in events] == [DocumentReady]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data, error_type",
    [
        (b"not a zip", ArchiveReadError),
        (make_archive(make_png(), canvasScale="big"), MetadataParseError),
        (make_archive(b"garbage image"), ImageDecodeError),
    ],
)
async def test_failed_load_moves_to_failed_state(data, error_type):
    session, events = recording_session()

    assert await session.open_archive(data) is None

    state = session.state
    assert isinstance(state, Failed)
    assert isinstance(state.error, error_type)
    assert events == [DocumentFailed(reason=state.reason)]
    assert session.document is None


@pytest.mark.asyncio
async def test_failed_load_drops_previous_document():
    session, _ = recording_session()
    await session.open_image(make_png())

    await session.open_archive(b"broken")

    assert isinstance(session.state, Failed)
    with pytest.raises(SessionNotEditingError):
        session.save()


@pytest.mark.asyncio
async def test_grid_mismatch_is_reported_but_load_succeeds():
    session, events = recording_session()

    document = await session.open_archive(make_archive(make_png(), tiles=[[]]))

    assert document.grid == Grid.default()
    assert isinstance(session.state, Editing)
    assert [type(event) for event in events] == [GridShapeMismatch, DocumentReady]
    assert "expected 29 rows" in events[0].reason


@pytest.mark.asyncio
async def test_session_waits_for_decoder_before_editing():
    decoder = GatedDecoder({b"img": ImageDimensions(5, 5)})
    session, events = recording_session(ArchiveCodec(decoder=decoder))

    task = asyncio.create_task(session.open_image(b"img"))
    await wait_until_started(decoder, b"img")

    state = session.state
    assert isinstance(state, AwaitingImageDecode)
    assert state.metadata_text == "{}"
    assert state.bare_image is True
    assert events == []

    decoder.gates[b"img"].set()
    document = await task

    assert session.state == Editing(document)


@pytest.mark.asyncio
async def test_stale_completion_does_not_overwrite_newer_load():
    decoder = GatedDecoder({b"first": ImageDimensions(1, 1), b"second": ImageDimensions(2, 2)})
    session, events = recording_session(ArchiveCodec(decoder=decoder))

    first = asyncio.create_task(session.open_image(b"first"))
    await wait_until_started(decoder, b"first")
    second = asyncio.create_task(session.open_image(b"second"))
    await wait_until_started(decoder, b"second")

    decoder.gates[b"second"].set()
    newer = await second
    decoder.gates[b"first"].set()
    older = await first

    assert older is None
    assert session.document == newer
    assert session.document.image_size == ImageDimensions(2, 2)
    assert [event.document.image_bytes for event in events] == [b"second"]


@pytest.mark.asyncio
async def test_stale_failure_is_discarded():
    decoder = GatedDecoder({b"first": None, b"second": ImageDimensions(3, 3)})
    session, events = recording_session(ArchiveCodec(decoder=decoder))

    first = asyncio.create_task(session.open_image(b"first"))
    await wait_until_started(decoder, b"first")
    second = asyncio.create_task(session.open_image(b"second"))
    await wait_until_started(decoder, b"second")

    decoder.gates[b"second"].set()
    await second
    decoder.gates[b"first"].set()
    await first

    assert isinstance(session.state, Editing)
    assert not any(isinstance(event, DocumentFailed) for event in events)


@pytest.mark.asyncio
async def test_save_snapshots_document_without_changing_state():
    session, events = recording_session()
    await session.open_image(make_png())
    session.handle(Click(8, 8))
    state_before = session.state

    data = session.save()

    assert session.state == state_before
    assert events[-1] == ArchiveBytes(data=data)

    reopened = DocumentSession()
    document = await reopened.open_archive(data)
    assert document == session.document
    assert document.grid.get(CellIndex(0, 0)) is TileState.WALKABLE


def test_save_requires_editing():
    session = DocumentSession()
    with pytest.raises(SessionNotEditingError):
        session.save()
    with pytest.raises(SessionNotEditingError):
        session.handle(RequestSave())


def test_edit_events_ignored_until_loaded():
    session = DocumentSession()
    assert session.handle(Click(8, 8)) is False
    assert session.handle(ChangeMode(Brush())) is False
    assert session.state == Unloaded()


def test_load_requests_must_be_dispatched():
    session = DocumentSession()
    with pytest.raises(TypeError):
        session.handle(RequestOpenImage(b"x"))


@pytest.mark.asyncio
async def test_dispatch_runs_full_edit_cycle():
    session, events = recording_session()

    assert await session.dispatch(RequestOpenArchive(make_archive(make_png()))) is True
    for event in (
        ChangeMode(Brush()),
        PointerDown(),
        PointerMove(8, 8),
        PointerMove(24, 8),
        PointerMove(40, 8),
        PointerUp(),
    ):
        await session.dispatch(event)
    await session.dispatch(RequestSave())

    grid = session.document.grid
    assert [grid.get(CellIndex(0, col)) for col in range(4)] == [
        TileState.WALKABLE,
        TileState.WALKABLE,
        TileState.WALKABLE,
        TileState.BLOCKED,
    ]
    assert grid.count(TileState.WALKABLE) == 3
    assert isinstance(events[-1], ArchiveBytes)


@pytest.mark.asyncio
async def test_viewport_survives_reload():
    session = DocumentSession()
    session.handle(ViewportRectUpdated(x=50, y=60, width=300, height=300))

    await session.dispatch(RequestOpenImage(make_png()))

    assert session.controller.viewport.x == 50
    assert session.handle(Click(50 + 8, 60 + 8)) is True
    assert session.document.grid.get(CellIndex(0, 0)) is TileState.WALKABLE


@pytest.mark.asyncio
async def test_reload_replaces_document_and_resets_mode():
    session = DocumentSession()
    await session.open_image(make_png())
    session.handle(ChangeMode(FillAll(TileState.WALKABLE)))
    assert session.document.grid == Grid.filled(TileState.WALKABLE)

    await session.open_image(make_png())

    assert session.document.grid == Grid.default()
    assert session.mode == Toggle()


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_session():
    def explode(event):
        raise RuntimeError("listener bug")

    events = []
    session = DocumentSession(listeners=[explode])
    session.add_listener(events.append)

    document = await session.open_image(make_png())

    assert document is not None
    assert events == [DocumentReady(document=document)]


@pytest.mark.asyncio
async def test_open_archive_file(tmp_path):
    path = tmp_path / "level.zip"
    path.write_bytes(make_archive(make_png(), canvasScale=4.0))
    session = DocumentSession()

    document = await session.open_archive_file(path)

    assert document.zoom_scale == 4.0


def make_raw_archive(metadata_text: str, image: bytes) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr(METADATA_ENTRY, metadata_text)
        zf.writestr(IMAGE_ENTRY, image)
    return buffer.getvalue()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "metadata_text",
    [
        '{"imageOffsetX": 1' + "0" * 400 + ', "imageOffsetY": 0, "canvasScale": 1, "tiles": []}',
        '{"imageOffsetX": 0, "imageOffsetY": 0, "canvasScale": 1, "tiles": '
        + "[" * 100000
        + "]" * 100000
        + "}",
    ],
)
async def test_unparseable_metadata_moves_to_failed_state(metadata_text):
    session, events = recording_session()

    assert await session.open_archive(make_raw_archive(metadata_text, make_png())) is None

    state = session.state
    assert isinstance(state, Failed)
    assert isinstance(state.error, MetadataParseError)
    assert events == [DocumentFailed(reason=state.reason)]


class BrokenDecoder(ImageDecoder):
    """Decoder that fails with an unrelated exception type."""

    async def decode(self, data: bytes) -> ImageDimensions:
        raise ValueError("bad chunk header")


@pytest.mark.asyncio
async def test_unexpected_decoder_error_moves_to_failed_state():
    session, events = recording_session(ArchiveCodec(decoder=BrokenDecoder()))

    assert await session.open_image(b"img") is None

    state = session.state
    assert isinstance(state, Failed)
    assert isinstance(state.error, ImageDecodeError)
    assert isinstance(state.error.__cause__, ValueError)
    assert "bad chunk header" in state.reason
    assert events == [DocumentFailed(reason=state.reason)]
