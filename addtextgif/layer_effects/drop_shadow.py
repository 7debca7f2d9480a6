"""
Drop Shadow layer effect.

Creates a shadow behind the layer content by:
1. Extracting the alpha channel
2. Blurring it with a Gaussian kernel
3. Offsetting the shadow
4. Colorizing with the shadow color
5. Compositing the original on top (apply only)
"""

from typing import Any, ClassVar, Optional, Tuple

import numpy as np
from PIL import Image as PILImage
from PIL import ImageFilter
from pydantic import Field

from ..color import parse_color, split_shadow
from .base import EffectResult, Expansion, LayerEffect


class DropShadow(LayerEffect):
    """
    Drop shadow effect.

    ``blur`` follows the canvas ``shadowBlur`` convention, the Gaussian's
    standard deviation is half of it.

    Example:
        >>> effect = DropShadow(blur=8, offset_x=0, offset_y=2, color='rgba(0,0,0,0.6)')
        >>> result = effect.apply(image)
    """

    effect_type: ClassVar[str] = "dropShadow"
    display_name: ClassVar[str] = "Drop Shadow"

    blur: float = Field(default=5.0, ge=0.0)
    offset_x: float = Field(default=4.0, alias='offsetX')
    offset_y: float = Field(default=4.0, alias='offsetY')
    color: str = Field(default='rgba(0,0,0,0.75)')

    _color_rgba: Optional[Tuple[int, int, int, int]] = None

    def model_post_init(self, __context: Any) -> None:
        """Parse color after initialization."""
        self._color_rgba = parse_color(self.color)

    @classmethod
    def from_css(cls, shadow: str, blur: float | None = None) -> "DropShadow":
        """
        Creates a shadow from a CSS box-shadow string.

        :param shadow: E.g. "0 2px 12px rgba(0,0,0,0.6)"
        :param blur: Overrides the blur of the CSS string if given
        :return: The effect
        """
        lengths, color = split_shadow(shadow)
        lengths = lengths + [0.0] * (3 - len(lengths))
        offset_x, offset_y, css_blur = lengths[:3]
        return cls(
            offset_x=offset_x,
            offset_y=offset_y,
            blur=css_blur if blur is None else blur,
            color=color,
        )

    @property
    def color_rgba(self) -> Tuple[int, int, int, int]:
        """Get color as RGBA tuple (0-255)."""
        if self._color_rgba is None:
            self._color_rgba = parse_color(self.color)
        return self._color_rgba

    @property
    def is_visible(self) -> bool:
        """A canvas skips shadows that are fully transparent or fully hidden."""
        if not self.enabled or self.color_rgba[3] == 0:
            return False
        return self.blur > 0 or self.offset_x != 0 or self.offset_y != 0

    def get_expansion(self) -> Expansion:
        """Calculate expansion needed for the shadow."""
        # Blur expands by ~3 sigma in each direction
        blur_expand = int(self.blur * 1.5) + 2

        left = blur_expand + max(0, -int(self.offset_x))
        right = blur_expand + max(0, int(self.offset_x))
        top = blur_expand + max(0, -int(self.offset_y))
        bottom = blur_expand + max(0, int(self.offset_y))

        return Expansion(left=left, top=top, right=right, bottom=bottom)

    def apply_shadow_only(self, image: np.ndarray) -> EffectResult:
        """
        Get the shadow without compositing the original image.

        Args:
            image: Input RGBA image as numpy array (H, W, 4)

        Returns:
            EffectResult with ONLY the shadow
        """
        image = self._ensure_rgba(image)
        expansion = self.get_expansion()
        expand = max(expansion.left, expansion.right, expansion.top, expansion.bottom)
        h, w = image.shape[:2]
        new_h, new_w = h + 2 * expand, w + 2 * expand

        if not self.is_visible:
            empty = np.zeros((new_h, new_w, 4), dtype=np.uint8)
            return EffectResult(image=empty, offset_x=-expand, offset_y=-expand)

        alpha = np.zeros((new_h, new_w), dtype=np.uint8)
        ox = expand + int(round(self.offset_x))
        oy = expand + int(round(self.offset_y))
        alpha[oy:oy + h, ox:ox + w] = image[:, :, 3]

        mask = PILImage.fromarray(alpha)
        if self.blur > 0:
            mask = mask.filter(ImageFilter.GaussianBlur(radius=self.blur / 2.0))

        r, g, b, a = self.color_rgba
        shadow = np.zeros((new_h, new_w, 4), dtype=np.uint8)
        shadow[:, :, 0] = r
        shadow[:, :, 1] = g
        shadow[:, :, 2] = b
        strength = (a / 255.0) * self.opacity
        shadow[:, :, 3] = (np.asarray(mask, dtype=np.float32) * strength).round().astype(np.uint8)

        return EffectResult(image=shadow, offset_x=-expand, offset_y=-expand)

    def apply(self, image: np.ndarray) -> EffectResult:
        """
        Apply drop shadow to image.

        Args:
            image: Input RGBA image as numpy array (H, W, 4)

        Returns:
            EffectResult with shadowed image and offset
        """
        image = self._ensure_rgba(image)
        shadow = self.apply_shadow_only(image)
        expand = -shadow.offset_x
        base = PILImage.fromarray(shadow.image)
        top = PILImage.new("RGBA", base.size, (0, 0, 0, 0))
        top.paste(PILImage.fromarray(image), (expand, expand))
        result = PILImage.alpha_composite(base, top)
        return EffectResult(
            image=np.asarray(result, dtype=np.uint8).copy(),
            offset_x=shadow.offset_x,
            offset_y=shadow.offset_y,
        )
