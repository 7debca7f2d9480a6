"""GIF encoding and the export pipeline.

:class:`GifEncoder` collects composited RGBA frames with their delays and
encodes them on a pool of worker threads: every frame is reduced to a
256 color palette in parallel, then the frames are written as one GIF89a
with the infinite loop extension. Completion is reported through exactly one
``finished`` or ``abort`` signal per render.

:func:`render_gif` is the export operation: it walks all frames once,
composites the overlays active during each frame and awaits the encoder.

Example:
    from addtextgif.encoder import render_gif

    result = await render_gif(document.frames, store.items,
                              (document.width, document.height))
    with open(result.file_name, "wb") as f:
        f.write(result.read())
"""

from __future__ import annotations

import asyncio
import io
import logging
import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator, Literal, Sequence

import numpy as np
import PIL.GifImagePlugin
import PIL.Image

from .blob_store import BlobStore, blob_store as default_blob_store
from .compositor import TemplateLookup, composite_frame
from .config import EditorStrings, Settings, settings as default_settings
from .decoder import GIF_MIME_TYPE, Frame
from .errors import EncodeError
from .font_registry import FontRegistry
from .overlays import OverlayItem, overlay_overlaps_frame
from .templates import get_template

logger = logging.getLogger(__name__)

ALPHA_THRESHOLD = 128
"Pixels with a lower alpha become the transparent palette entry"
TRANSPARENT_INDEX = 255
"Palette entry reserved for transparent pixels"

EncoderEvent = Literal["finished", "abort", "progress"]


def _quantize(pixels: np.ndarray, quality: int, reserve_transparency: bool = False) -> PIL.Image.Image:
    """
    Reduces an RGBA frame to a palette image.

    :param pixels: RGBA pixels (height, width, 4)
    :param quality: 1 (best) to 30 (fastest), as the sample factor of gif.js
    :param reserve_transparency: Whether to keep palette entry 255 free for
        transparent pixels. Set for every frame of an animation as soon as
        one frame contains transparency.
    :return: A "P" mode image, with a "transparency" entry if reserved
    """
    image = PIL.Image.fromarray(np.ascontiguousarray(pixels[:, :, :3]))
    method = PIL.Image.Quantize.MEDIANCUT if quality <= 10 else PIL.Image.Quantize.FASTOCTREE
    colors = TRANSPARENT_INDEX if reserve_transparency else 256
    quantized = image.quantize(colors=colors, method=method, dither=PIL.Image.Dither.FLOYDSTEINBERG)
    if reserve_transparency:
        indices = np.array(quantized, dtype=np.uint8)
        indices[pixels[:, :, 3] < ALPHA_THRESHOLD] = TRANSPARENT_INDEX
        palette = quantized.getpalette() or []
        palette = (palette + [0] * 768)[:768]
        # putpalette turns the "L" index image into a "P" image
        quantized = PIL.Image.fromarray(indices)
        quantized.putpalette(palette)
        quantized.info["transparency"] = TRANSPARENT_INDEX
    return quantized


def has_transparency(pixels: np.ndarray) -> bool:
    """Whether a frame contains pixels that become transparent."""
    return bool((pixels[:, :, 3] < ALPHA_THRESHOLD).any())


class GifEncoder:
    """
    Multi-threaded animated GIF encoder.

    Frames are added with :meth:`add_frame`; :meth:`render` starts the
    encoding in the background and returns immediately. Listeners registered
    with :meth:`on` receive the encoded bytes (``finished``), the number of
    quantized frames (``progress``) or no argument (``abort``).
    """

    def __init__(
        self,
        width: int,
        height: int,
        workers: int = 2,
        quality: int = 10,
        loop: int = 0,
    ):
        """
        :param width: Width of the GIF in pixels
        :param height: Height of the GIF in pixels
        :param workers: Number of worker threads
        :param quality: Palette quality, 1 = best, 30 = fastest
        :param loop: Loop count, 0 = forever
        """
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        if workers < 1:
            raise ValueError("At least one worker is required")
        self.width = width
        self.height = height
        self.workers = workers
        self.quality = max(1, min(30, quality))
        self.loop = loop
        self.error: Exception | None = None
        "The failure behind an abort signal, None for a user abort"
        self._frames: list[tuple[np.ndarray, int]] = []
        self._listeners: dict[str, list[Callable]] = {"finished": [], "abort": [], "progress": []}
        self._lock = threading.Lock()
        self._signalled = False
        self._aborted = False
        self._running = False
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future] = []

    @property
    def frame_count(self) -> int:
        """Number of added frames."""
        return len(self._frames)

    @property
    def is_running(self) -> bool:
        """Whether a render is in progress."""
        return self._running

    def on(self, event: EncoderEvent, callback: Callable) -> None:
        """Registers a listener for "finished", "abort" or "progress"."""
        if event not in self._listeners:
            raise ValueError(f"Unknown encoder event: {event}")
        self._listeners[event].append(callback)

    def add_frame(self, pixels: np.ndarray, delay: int) -> None:
        """
        Adds a frame. The pixels are copied.

        :param pixels: RGBA pixels (height, width, 4) of the GIF's size
        :param delay: Display duration in milliseconds
        """
        if self._running:
            raise RuntimeError("Frames can not be added while rendering")
        if pixels.shape[:2] != (self.height, self.width):
            raise ValueError(
                f"Frame size {pixels.shape[1]}x{pixels.shape[0]} does not match "
                f"{self.width}x{self.height}"
            )
        self._frames.append((np.array(pixels, dtype=np.uint8, copy=True), int(delay)))

    def render(self) -> None:
        """Starts encoding in the background."""
        with self._lock:
            if self._running or self._signalled:
                raise RuntimeError("A GIF encoder renders only once")
            self._running = True
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="gif-encoder"
        )
        thread = threading.Thread(target=self._run, name="gif-encoder-main", daemon=True)
        thread.start()

    def abort(self) -> None:
        """Cancels a running render, releasing its workers."""
        with self._lock:
            self._aborted = True
            futures = list(self._futures)
        for future in futures:
            future.cancel()
        self._shutdown()
        self._emit("abort")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run(self) -> None:
        try:
            if not self._frames:
                raise EncodeError("No frames to render")
            assert self._executor is not None
            transparent = any(has_transparency(pixels) for pixels, _ in self._frames)
            with self._lock:
                if self._aborted:
                    return
                self._futures = [
                    self._executor.submit(_quantize, pixels, self.quality, transparent)
                    for pixels, _ in self._frames
                ]
            images = []
            for index, future in enumerate(self._futures):
                images.append(future.result())
                self._emit_progress(index + 1)
                if self._aborted:
                    return
            data = self._assemble(images, [delay for _, delay in self._frames], transparent)
            self._shutdown()
            self._emit("finished", data)
        except CancelledError:
            # abort() already signalled
            return
        except Exception as e:
            if self._aborted:
                return
            logger.warning(f"GIF encoding failed: {e}")
            self.error = e
            self._shutdown()
            self._emit("abort")
        finally:
            self._running = False

    def _assemble(self, images: list[PIL.Image.Image], delays: list[int], transparent: bool) -> bytes:
        # Frames are written one by one so identical consecutive frames keep
        # their own delays instead of being merged into one.
        output = io.BytesIO()
        header, _ = PIL.GifImagePlugin.getheader(
            images[0].copy(), info={"loop": self.loop, "optimize": False}
        )
        for chunk in header:
            output.write(chunk)
        params = {"disposal": 2 if transparent else 1, "include_color_table": True}
        if transparent:
            params["transparency"] = TRANSPARENT_INDEX
        for image, delay in zip(images, delays):
            for chunk in PIL.GifImagePlugin.getdata(image, duration=delay, **params):
                output.write(chunk)
        output.write(b";")
        return output.getvalue()

    def _shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _emit_progress(self, done: int) -> None:
        for callback in self._listeners["progress"]:
            callback(done)

    def _emit(self, event: str, *args) -> None:
        """Emits a final signal, only the first one per render gets through."""
        with self._lock:
            if self._signalled:
                return
            self._signalled = True
        for callback in self._listeners[event]:
            callback(*args)


_stamp_lock = threading.Lock()
_last_stamp = 0


def export_file_name(prefix: str = "addtextgif") -> str:
    """
    Returns a timestamped download name, unique within the process.

    :param prefix: The file name prefix
    :return: E.g. "addtextgif-1760875200123.gif"
    """
    global _last_stamp
    with _stamp_lock:
        stamp = max(int(time.time() * 1000), _last_stamp + 1)
        _last_stamp = stamp
    return f"{prefix}-{stamp}.gif"


@dataclass
class RenderResult:
    """Handle to an exported GIF."""

    handle: str
    "Blob store handle of the GIF's bytes"
    file_name: str
    "Suggested download name"
    size: int
    store: BlobStore
    mime_type: str = GIF_MIME_TYPE

    @property
    def is_released(self) -> bool:
        """Whether the bytes were freed."""
        return self.handle not in self.store

    def read(self) -> bytes:
        """
        Returns the GIF's bytes.

        :raises KeyError: If the result was released
        """
        return self.store.get(self.handle)

    def release(self) -> None:
        """Frees the bytes."""
        self.store.release(self.handle)


def active_overlays_per_frame(
    frames: Sequence[Frame],
    overlays: Sequence[OverlayItem],
) -> list[list[OverlayItem]]:
    """
    Determines which overlays each frame receives on export.

    :param frames: The frames in display order
    :param overlays: The overlays in draw order
    :return: For every frame the overlays intersecting its display window
    """
    result = []
    elapsed = 0
    for frame in frames:
        result.append(
            [overlay for overlay in overlays if overlay_overlaps_frame(overlay, elapsed, frame.delay)]
        )
        elapsed += frame.delay
    return result


def iter_composited_frames(
    frames: Sequence[Frame],
    overlays: Sequence[OverlayItem],
    templates: TemplateLookup = get_template,
) -> Iterator[tuple[np.ndarray, int]]:
    """
    Yields every frame with its active overlays drawn on top.

    :return: Iterator of (RGBA pixels, delay in milliseconds)
    """
    for frame, active in zip(frames, active_overlays_per_frame(frames, overlays)):
        if active:
            yield composite_frame(frame.pixels, active, templates), frame.delay
        else:
            yield frame.pixels, frame.delay


async def render_gif(
    frames: Sequence[Frame],
    overlays: Sequence[OverlayItem],
    dimensions: tuple[int, int],
    *,
    templates: TemplateLookup = get_template,
    settings: Settings | None = None,
    strings: EditorStrings | None = None,
    blob_store: BlobStore | None = None,
    on_progress: Callable[[int], None] | None = None,
) -> RenderResult:
    """
    Renders frames and overlays into a new animated GIF.

    :param frames: The decoded frames
    :param overlays: The overlays in draw order
    :param dimensions: The GIF's size as (width, height)
    :param templates: Template lookup
    :param settings: Encoder settings, the module settings if None
    :param strings: User facing error messages
    :param blob_store: Store receiving the GIF's bytes
    :param on_progress: Called with the number of encoded frames
    :return: The result handle
    :raises EncodeError: If there are no frames or the encoder aborted
    """
    settings = settings or default_settings
    strings = strings or EditorStrings()
    store = blob_store or default_blob_store
    if not frames:
        raise EncodeError(strings.no_frames)
    FontRegistry.register_font_dirs(settings.FONT_DIRS)
    width, height = dimensions

    loop = asyncio.get_running_loop()
    started = time.perf_counter()
    try:
        encoder = GifEncoder(
            width,
            height,
            workers=settings.ENCODER_WORKERS,
            quality=settings.ENCODER_QUALITY,
        )

        def add_all() -> None:
            for pixels, delay in iter_composited_frames(frames, overlays, templates):
                encoder.add_frame(pixels, delay)

        await loop.run_in_executor(None, add_all)
    except (ValueError, OSError) as e:
        raise EncodeError(f"{strings.generic_error} ({e})") from e

    done: asyncio.Future[bytes] = loop.create_future()

    def resolve(data: bytes) -> None:
        if not done.done():
            done.set_result(data)

    def reject() -> None:
        if not done.done():
            done.set_exception(EncodeError(strings.render_aborted))

    encoder.on("finished", lambda data: loop.call_soon_threadsafe(resolve, data))
    encoder.on("abort", lambda: loop.call_soon_threadsafe(reject))
    if on_progress is not None:
        encoder.on("progress", lambda count: loop.call_soon_threadsafe(on_progress, count))
    encoder.render()
    try:
        data = await done
    except asyncio.CancelledError:
        encoder.abort()
        raise

    handle = store.put(data, GIF_MIME_TYPE)
    result = RenderResult(
        handle=handle,
        file_name=export_file_name(settings.FILE_PREFIX),
        size=len(data),
        store=store,
    )
    logger.info(
        f"Rendered {len(frames)} frames with {len(overlays)} overlays to {result.size} bytes "
        f"in {time.perf_counter() - started:.2f}s"
    )
    return result


__all__ = [
    "GifEncoder",
    "RenderResult",
    "active_overlays_per_frame",
    "has_transparency",
    "export_file_name",
    "iter_composited_frames",
    "render_gif",
]
