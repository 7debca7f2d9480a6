"""
Base class for overlay layer effects.

A layer effect takes an RGBA8 image and returns an output image, possibly
larger than the input, together with the offset of the output relative to
the input's origin.
"""

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Type
import uuid

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


@dataclass
class Expansion:
    """How much an effect expands the canvas."""
    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0


@dataclass
class EffectResult:
    """Result of applying a layer effect."""
    image: np.ndarray  # Output image (may be larger than input)
    offset_x: int = 0  # X offset of output relative to input origin
    offset_y: int = 0  # Y offset of output relative to input origin


class LayerEffect(BaseModel):
    """
    Base class for all layer effects.

    Uses Pydantic for serialization with camelCase aliases.

    Subclasses must implement:
    - effect_type: Class variable with the effect type string
    - get_expansion(): Returns how much the effect expands the canvas
    - apply(): Applies the effect to an image
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
        arbitrary_types_allowed=True,
    )

    effect_type: ClassVar[str] = "base"
    display_name: ClassVar[str] = "Layer Effect"

    # Registry of effect classes by effect_type
    _registry: ClassVar[Dict[str, Type['LayerEffect']]] = {}

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    enabled: bool = Field(default=True)
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)

    def __init_subclass__(cls, **kwargs):
        """Register effect subclass in registry."""
        super().__init_subclass__(**kwargs)
        if hasattr(cls, 'effect_type') and cls.effect_type != "base":
            LayerEffect._registry[cls.effect_type] = cls

    @abstractmethod
    def get_expansion(self) -> Expansion:
        """Get the canvas expansion needed for this effect."""
        pass

    @abstractmethod
    def apply(self, image: np.ndarray) -> EffectResult:
        """
        Apply the effect to an image.

        Args:
            image: Input RGBA image as numpy array (H, W, 4)

        Returns:
            EffectResult with output image and offsets
        """
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the effect including its type."""
        data = self.model_dump(by_alias=True, mode='json')
        data['type'] = self.effect_type
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerEffect':
        """
        Reconstruct effect from dictionary.

        Args:
            data: Dictionary from to_dict()

        Returns:
            LayerEffect instance
        """
        effect_type = data.get('type', 'base')
        effect_class = cls._registry.get(effect_type)
        if effect_class is None:
            raise ValueError(f"Unknown effect type: {effect_type}")
        return effect_class.model_validate(data)

    @staticmethod
    def _ensure_rgba(image: np.ndarray) -> np.ndarray:
        """Convert RGB to RGBA if needed."""
        if image.shape[2] == 3:
            alpha = np.full((*image.shape[:2], 1), 255, dtype=np.uint8)
            return np.concatenate([image, alpha], axis=2)
        return image
