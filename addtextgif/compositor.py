"""Overlay compositor.

Draws text overlays onto frame pixels. Compositing is a pure function of the
frame, the overlays and the templates: every call works on its own scratch
canvas, nothing is shared between frames.

Per overlay the rule is:

- resolve the template and its font
- measure the text; its height is the template's font size
- a background box centered horizontally on ``x * width`` and starting half
  the padding above ``y * height``, sized text plus padding, with rounded
  corners, the template's background color and its optional shadow
- the text in the template color, centered on the same anchor and
  top-aligned at ``y * height``

Example:
    from addtextgif.compositor import composite_frame

    pixels = composite_frame(frame.pixels, overlays)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

import numpy as np
from PIL import Image as PILImage
from PIL import ImageDraw

from .color import parse_color
from .font_registry import FontHandle, FontRegistry
from .layer_effects import DropShadow
from .overlays import OverlayItem
from .templates import Template, get_template

SHADOW_BLUR = 8
"Canvas shadow blur applied to template shadows"

TemplateLookup = Callable[[str], Template]


@dataclass(frozen=True)
class OverlayBox:
    """Pixel geometry of a rendered overlay."""

    x: float
    "Left edge of the background box"
    y: float
    "Top edge of the background box"
    width: float
    height: float
    radius: float
    text_x: float
    "Left edge of the text"
    text_y: float
    "Top edge of the text"

    def to_bounds(self) -> tuple[float, float, float, float]:
        """Returns the box as (x, y, x2, y2)."""
        return self.x, self.y, self.x + self.width, self.y + self.height


def measure_text(text: str, font: FontHandle) -> float:
    """Advance width of a single line of text in pixels."""
    return float(font.getlength(text))


def layout_overlay(
    overlay: OverlayItem,
    template: Template,
    text_width: float,
    canvas_size: tuple[int, int],
) -> OverlayBox:
    """
    Computes where an overlay is drawn.

    :param overlay: The overlay
    :param template: Its resolved template
    :param text_width: The measured text width in pixels
    :param canvas_size: The canvas size as (width, height)
    :return: The box geometry
    """
    width, height = canvas_size
    anchor_x = overlay.x * width
    anchor_y = overlay.y * height
    padding = template.padding
    box_width = text_width + padding
    box_height = template.font_size + padding
    return OverlayBox(
        x=anchor_x - text_width / 2 - padding / 2,
        y=anchor_y - padding / 2,
        width=box_width,
        height=box_height,
        radius=min(template.border_radius, box_width / 2, box_height / 2),
        text_x=anchor_x - text_width / 2,
        text_y=anchor_y,
    )


def _alpha_over(canvas: PILImage.Image, layer: PILImage.Image, offset: tuple[int, int] = (0, 0)) -> None:
    """Composites an RGBA layer onto the canvas in place."""
    canvas.alpha_composite(layer, dest=(max(0, offset[0]), max(0, offset[1])),
                           source=(max(0, -offset[0]), max(0, -offset[1])))


def draw_overlay(
    canvas: PILImage.Image,
    overlay: OverlayItem,
    templates: TemplateLookup = get_template,
) -> OverlayBox:
    """
    Draws one overlay onto an RGBA canvas in place.

    :param canvas: The RGBA canvas
    :param overlay: The overlay to draw
    :param templates: Template lookup, falls back like :func:`get_template`
    :return: The drawn box geometry
    """
    template = templates(overlay.template_id)
    font = FontRegistry.get_font(template.font_family, template.font_size, template.effective_weight)
    box = layout_overlay(overlay, template, measure_text(overlay.text, font), canvas.size)

    # The box is drawn on its own layer so it can cast a shadow and blend
    # with its alpha
    layer = PILImage.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).rounded_rectangle(
        box.to_bounds(),
        radius=int(box.radius),
        fill=parse_color(template.background_color),
    )
    if template.shadow:
        shadow = DropShadow.from_css(template.shadow, blur=SHADOW_BLUR)
        if shadow.is_visible:
            result = shadow.apply_shadow_only(np.asarray(layer))
            _alpha_over(canvas, PILImage.fromarray(result.image), (result.offset_x, result.offset_y))
    _alpha_over(canvas, layer)

    # PIL anchors text at its top-left ("la") by default
    text_layer = PILImage.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(text_layer).text(
        (box.text_x, box.text_y),
        overlay.text,
        font=font,
        fill=parse_color(template.color),
    )
    _alpha_over(canvas, text_layer)
    return box


def composite_frame(
    pixels: np.ndarray,
    overlays: Iterable[OverlayItem],
    templates: TemplateLookup = get_template,
) -> np.ndarray:
    """
    Draws overlays onto a copy of a frame.

    :param pixels: The frame's RGBA pixels (height, width, 4)
    :param overlays: The overlays in draw order, later ones on top
    :param templates: Template lookup
    :return: The composited RGBA pixels, the input is not modified
    """
    canvas = PILImage.fromarray(np.ascontiguousarray(pixels).copy())
    if canvas.mode != "RGBA":
        canvas = canvas.convert("RGBA")
    for overlay in overlays:
        draw_overlay(canvas, overlay, templates)
    return np.asarray(canvas, dtype=np.uint8).copy()


__all__ = [
    "OverlayBox",
    "SHADOW_BLUR",
    "composite_frame",
    "draw_overlay",
    "layout_overlay",
    "measure_text",
]
