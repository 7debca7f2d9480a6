"""
Pytest fixtures for AddTextGif tests
"""

import io

import numpy as np
import PIL.Image
import pytest

from addtextgif.blob_store import BlobStore
from addtextgif.decoder import Frame

RED = (220, 30, 30)
GREEN = (30, 200, 60)
BLUE = (30, 60, 220)


def make_gif(colors: list[tuple[int, int, int]], delays: list[int], size: tuple[int, int] = (64, 48)) -> bytes:
    """
    Builds an animated GIF of solid colored frames.

    :param colors: One RGB color per frame
    :param delays: One delay per frame in milliseconds
    :param size: The size as (width, height)
    :return: The GIF file's content
    """
    images = [PIL.Image.new("RGB", size, color) for color in colors]
    output = io.BytesIO()
    images[0].save(
        output,
        format="GIF",
        save_all=True,
        append_images=images[1:],
        duration=delays,
        loop=0,
    )
    return output.getvalue()


def make_frames(delays: list[int], size: tuple[int, int] = (64, 48)) -> list[Frame]:
    """Builds in-memory frames with distinct solid colors."""
    colors = [RED, GREEN, BLUE]
    width, height = size
    frames = []
    for index, delay in enumerate(delays):
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        pixels[:, :, :3] = colors[index % len(colors)]
        pixels[:, :, 3] = 255
        frames.append(Frame.from_pixels(index, delay, pixels, with_data_url=False))
    return frames


@pytest.fixture
def three_frame_gif() -> bytes:
    """
    Returns a 3 frame GIF with delays of 100, 150 and 200ms.
    :return: The GIF data
    """
    return make_gif([RED, GREEN, BLUE], [100, 150, 200])


@pytest.fixture
def wide_gif() -> bytes:
    """A 3 frame GIF large enough to hold a caption."""
    return make_gif([RED, GREEN, BLUE], [100, 150, 200], size=(320, 160))


@pytest.fixture
def png_data() -> bytes:
    """A PNG image, i.e. a valid image which is not a GIF."""
    output = io.BytesIO()
    PIL.Image.new("RGB", (8, 8), RED).save(output, format="PNG")
    return output.getvalue()


@pytest.fixture
def blob_store() -> BlobStore:
    """A fresh, isolated blob store."""
    return BlobStore()
