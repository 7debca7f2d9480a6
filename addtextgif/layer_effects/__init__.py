"""
Layer effects applied to overlay graphics before they are composited.

Example:
    >>> from addtextgif.layer_effects import DropShadow
    >>> shadow = DropShadow.from_css('0 2px 12px rgba(0,0,0,0.6)', blur=8)
    >>> result = shadow.apply_shadow_only(layer_pixels)
    >>> # result.image is the shadow, result.offset_x/y its position shift

All effects operate on RGBA8 numpy arrays (H, W, 4).
"""

from .base import LayerEffect, Expansion, EffectResult
from .drop_shadow import DropShadow

__all__ = [
    "LayerEffect",
    "Expansion",
    "EffectResult",
    "DropShadow",
]
