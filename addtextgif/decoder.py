"""
GIF decoding.

Converts an uploaded GIF into an ordered list of :class:`Frame` objects. Each
frame holds the fully composed RGBA canvas at that point of the animation
(Pillow applies the disposal methods while seeking), the frame's display
delay and a PNG data URL for previews.

Example:
    from addtextgif.decoder import decode_gif

    with open("cat.gif", "rb") as f:
        document = decode_gif(f.read())
    print(document.width, document.height, document.total_duration)
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field

import filetype
import numpy as np
import PIL.Image
import PIL.ImageSequence

from .errors import DecodeError, EmptyGifError

logger = logging.getLogger(__name__)

GIF_MIME_TYPE = "image/gif"

DEFAULT_DELAY_CS = 10
"Delay in centiseconds assumed for frames that do not define one"
MIN_DELAY_CS = 2
"Minimum delay in centiseconds, browsers treat smaller values the same way"


def delay_to_ms(delay_cs: int | None) -> int:
    """
    Converts a GIF delay field to milliseconds, enforcing the 20ms floor.

    :param delay_cs: The delay in centiseconds or None if the frame has none
    :return: The delay in milliseconds, at least 20
    """
    if delay_cs is None:
        delay_cs = DEFAULT_DELAY_CS
    return max(int(delay_cs), MIN_DELAY_CS) * 10


@dataclass(frozen=True)
class Frame:
    """
    A single decoded frame.

    Frames are immutable once decoded; the pixel buffer is flagged read-only.
    """

    index: int
    "Position in the animation, 0-based"
    delay: int
    "Display duration in milliseconds"
    pixels: np.ndarray = field(repr=False, compare=False)
    "RGBA pixels of shape (height, width, 4)"
    data_url: str = field(default="", repr=False, compare=False)
    "PNG data URL for displaying the frame"

    @property
    def width(self) -> int:
        """Frame width in pixels."""
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        """Frame height in pixels."""
        return self.pixels.shape[0]

    def to_pil(self) -> PIL.Image.Image:
        """Returns a copy of the frame as RGBA PIL image."""
        return PIL.Image.fromarray(self.pixels.copy())

    @classmethod
    def from_pixels(cls, index: int, delay: int, pixels: np.ndarray, with_data_url: bool = True) -> Frame:
        """
        Creates a frame from an RGBA array.

        :param index: The frame's index
        :param delay: The delay in milliseconds
        :param pixels: RGBA pixels of shape (height, width, 4). Copied.
        :param with_data_url: Whether to compute the preview data URL
        :return: The frame
        """
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            raise ValueError("Frames require uint8 RGBA pixels of shape (height, width, 4)")
        pixels = np.ascontiguousarray(pixels).copy()
        pixels.setflags(write=False)
        data_url = to_data_url(pixels) if with_data_url else ""
        return cls(index=index, delay=delay, pixels=pixels, data_url=data_url)


@dataclass(frozen=True)
class GifDocument:
    """The decoded animation."""

    frames: tuple[Frame, ...]
    width: int
    height: int
    loop: int | None = None
    "Loop count of the source animation, 0 = forever, None = no loop extension"

    @property
    def total_duration(self) -> int:
        """Sum of all frame delays in milliseconds."""
        return sum(frame.delay for frame in self.frames)

    @property
    def delays(self) -> list[int]:
        """The frame delays in milliseconds."""
        return [frame.delay for frame in self.frames]

    def __len__(self) -> int:
        return len(self.frames)


def to_data_url(pixels: np.ndarray) -> str:
    """Encodes RGBA pixels as PNG data URL."""
    output = io.BytesIO()
    PIL.Image.fromarray(pixels).save(output, format="png")
    encoded = base64.b64encode(output.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def is_gif(data: bytes) -> bool:
    """Checks the magic bytes for GIF87a / GIF89a."""
    kind = filetype.guess(data)
    return kind is not None and kind.mime == GIF_MIME_TYPE


def decode_gif(data: bytes, with_data_urls: bool = True) -> GifDocument:
    """
    Decodes a GIF into frames.

    :param data: The GIF file's content
    :param with_data_urls: Whether to compute a PNG data URL per frame
    :return: The decoded document
    :raises EmptyGifError: If the GIF has no frames
    :raises DecodeError: If the data is not a readable GIF
    """
    if not data or not is_gif(data):
        raise DecodeError("The file is not a GIF image")
    try:
        with PIL.Image.open(io.BytesIO(data)) as handle:
            loop = handle.info.get("loop")
            frames: list[Frame] = []
            for index, pil_frame in enumerate(PIL.ImageSequence.Iterator(handle)):
                duration = pil_frame.info.get("duration")
                delay_cs = None if duration is None else int(duration) // 10
                pixels = np.asarray(pil_frame.convert("RGBA"), dtype=np.uint8)
                frames.append(
                    Frame.from_pixels(
                        index=index,
                        delay=delay_to_ms(delay_cs),
                        pixels=pixels,
                        with_data_url=with_data_urls,
                    )
                )
    except EOFError as e:
        # raised by Pillow when the first image descriptor is missing
        raise EmptyGifError("The GIF does not contain any frames") from e
    except (OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Invalid or damaged GIF data: {e}") from e
    if not frames:
        raise EmptyGifError("The GIF does not contain any frames")

    document = GifDocument(
        frames=tuple(frames),
        width=frames[0].width,
        height=frames[0].height,
        loop=loop,
    )
    logger.info(
        f"Decoded GIF with {len(document)} frames, {document.width}x{document.height}, "
        f"{document.total_duration}ms"
    )
    return document


async def decode_gif_async(
    data: bytes,
    executor: Executor | None = None,
    with_data_urls: bool = True,
) -> GifDocument:
    """
    Decodes a GIF without blocking the event loop.

    :param data: The GIF file's content
    :param executor: The executor to decode in, the loop's default if None
    :param with_data_urls: Whether to compute a PNG data URL per frame
    :return: The decoded document
    :raises DecodeError: For any failure during decoding
    """
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(executor, decode_gif, data, with_data_urls)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"Decoding failed: {e}") from e


def format_duration(ms: float) -> str:
    """Formats milliseconds as seconds with two decimals, e.g. 1.23s."""
    return f"{ms / 1000:.2f}s"


__all__ = [
    "DEFAULT_DELAY_CS",
    "Frame",
    "GIF_MIME_TYPE",
    "GifDocument",
    "MIN_DELAY_CS",
    "decode_gif",
    "decode_gif_async",
    "delay_to_ms",
    "format_duration",
    "is_gif",
    "to_data_url",
]
