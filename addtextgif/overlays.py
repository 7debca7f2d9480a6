"""
Overlay store - the user's text overlays for the loaded GIF.

Every overlay carries a time window in milliseconds, a normalized position
and a template reference. The store keeps overlays in insertion order, which
is also their draw order (later overlays are drawn on top), and re-applies
the window and position limits after every change.
"""

from __future__ import annotations

import uuid
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field

from .templates import TemplateCatalog, default_catalog

MIN_WINDOW_MS = 100
"Minimum visible duration of an overlay"
DEFAULT_WINDOW_MS = 4000
"Upper bound of the window assigned to new overlays"
MIN_DEFAULT_WINDOW_MS = 500
"Lower bound of the window assigned to new overlays"
FALLBACK_DURATION_MS = 1000
"Duration clamped against while no animation duration is known"
POSITION_MIN = 0.05
POSITION_MAX = 0.95
DEFAULT_X = 0.5
DEFAULT_Y = 0.8


class OverlayItem(BaseModel):
    """A user-authored text element with a time window and position."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str = Field(default='')
    start: float = Field(default=0.0)
    end: float = Field(default=0.0)
    x: float = Field(default=DEFAULT_X)
    y: float = Field(default=DEFAULT_Y)
    template_id: str = Field(default='', alias='templateId')

    def is_active_at(self, t: float) -> bool:
        """Whether the overlay is visible at a cursor position (inclusive window)."""
        return self.start <= t <= self.end

    def overlaps_frame(self, frame_start: float, frame_delay: float) -> bool:
        """Whether any part of the frame's display window intersects the overlay's window."""
        return overlay_overlaps_frame(self, frame_start, frame_delay)

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys the editor front end expects."""
        return self.model_dump(by_alias=True)


def clamp_position(value: float) -> float:
    """Keeps a normalized coordinate within [0.05, 0.95]."""
    return min(max(float(value), POSITION_MIN), POSITION_MAX)


def clamp_window(start: float, end: float, total_duration: float) -> tuple[float, float]:
    """
    Clamps an overlay window against the animation duration.

    :param start: Requested start in milliseconds
    :param end: Requested end in milliseconds
    :param total_duration: The animation's duration, 0 if unknown
    :return: (start, end) with start >= 0, end >= start + 100 and end <= the
        duration whenever the duration allows a 100ms window
    """
    safe_total = total_duration or FALLBACK_DURATION_MS
    clamped_start = min(max(start, 0), max(safe_total - MIN_WINDOW_MS, 0))
    clamped_end = max(clamped_start + MIN_WINDOW_MS, min(end, safe_total))
    return clamped_start, clamped_end


def overlay_overlaps_frame(overlay: OverlayItem, frame_start: float, frame_delay: float) -> bool:
    """
    The export overlap rule.

    A frame shown during [frame_start, frame_start + frame_delay) receives the
    overlay if ``frame_start + frame_delay > start and frame_start < end``. An
    overlay ending exactly where a frame starts is excluded.
    """
    return frame_start + frame_delay > overlay.start and frame_start < overlay.end


def default_window_end(total_duration: float) -> float:
    """End of the window assigned to a new overlay."""
    total = total_duration or DEFAULT_WINDOW_MS
    return max(MIN_DEFAULT_WINDOW_MS, min(total, DEFAULT_WINDOW_MS))


class OverlayStore:
    """
    In-memory collection of overlays.

    Unknown ids passed to :meth:`update` or :meth:`delete` are ignored, the
    overlay may have been removed while a UI event was still in flight.
    """

    def __init__(
        self,
        catalog: TemplateCatalog | None = None,
        default_text: str = "Your caption here",
    ):
        """
        :param catalog: Template catalog providing the default template
        :param default_text: Text of newly added overlays
        """
        self.catalog = catalog or default_catalog
        self.default_text = default_text
        self._items: dict[str, OverlayItem] = {}
        self._total_duration: float = 0
        self._has_frames = False

    # -------------------------------------------------------------------------
    # Document binding
    # -------------------------------------------------------------------------

    @property
    def total_duration(self) -> float:
        """Duration windows are clamped against."""
        return self._total_duration

    def set_document(self, frame_count: int, total_duration: float) -> None:
        """
        Binds the store to the loaded animation.

        :param frame_count: Number of frames, adding overlays needs at least one
        :param total_duration: The animation's duration in milliseconds
        """
        self._has_frames = frame_count > 0
        self._total_duration = total_duration

    def set_total_duration(self, total_duration: float) -> None:
        """Updates the duration and re-clamps all windows."""
        self._total_duration = total_duration
        for overlay_id in list(self._items):
            self.update(overlay_id)

    def clear(self) -> None:
        """Removes all overlays."""
        self._items.clear()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, text: str | None = None, template_id: str | None = None) -> OverlayItem | None:
        """
        Adds an overlay with the default window and position.

        :param text: The text, the store's default text if None
        :param template_id: The template, the catalog's default if None
        :return: The new overlay or None if no frames are loaded
        """
        if not self._has_frames:
            return None
        overlay = OverlayItem(
            text=self.default_text if text is None else text,
            start=0,
            end=default_window_end(self._total_duration),
            x=DEFAULT_X,
            y=DEFAULT_Y,
            template_id=template_id if template_id is not None else self.catalog.default.id,
        )
        self._items[overlay.id] = overlay
        return overlay

    def update(self, overlay_id: str, **changes: Any) -> OverlayItem | None:
        """
        Applies changes to an overlay and re-clamps it.

        :param overlay_id: The overlay's id
        :param changes: Fields to change, by name or camelCase alias
        :return: The updated overlay or None if the id is unknown
        """
        current = self._items.get(overlay_id)
        if current is None:
            return None
        data = current.model_dump()
        for key, value in changes.items():
            if key == 'templateId':
                key = 'template_id'
            if key == 'id' or key not in data:
                continue
            data[key] = value
        start, end = clamp_window(float(data['start']), float(data['end']), self._total_duration)
        data['start'] = start
        data['end'] = end
        data['x'] = clamp_position(data['x'])
        data['y'] = clamp_position(data['y'])
        updated = OverlayItem.model_validate(data)
        self._items[overlay_id] = updated
        return updated

    def move(self, overlay_id: str, x: float, y: float) -> OverlayItem | None:
        """Repositions an overlay, the drag-to-reposition entry point."""
        return self.update(overlay_id, x=x, y=y)

    def delete(self, overlay_id: str) -> None:
        """Removes an overlay, absent ids are ignored."""
        self._items.pop(overlay_id, None)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, overlay_id: str) -> OverlayItem | None:
        """Returns an overlay by id."""
        return self._items.get(overlay_id)

    @property
    def items(self) -> list[OverlayItem]:
        """All overlays in insertion (draw) order."""
        return list(self._items.values())

    def active_at(self, t: float) -> list[OverlayItem]:
        """Overlays visible at a cursor position, for live preview."""
        return [overlay for overlay in self._items.values() if overlay.is_active_at(t)]

    def active_during_frame(self, frame_start: float, frame_delay: float) -> list[OverlayItem]:
        """Overlays intersecting a frame's display window, for export."""
        return [
            overlay
            for overlay in self._items.values()
            if overlay_overlaps_frame(overlay, frame_start, frame_delay)
        ]

    def __contains__(self, overlay_id: object) -> bool:
        return overlay_id in self._items

    def __iter__(self) -> Iterator[OverlayItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self._items)


__all__ = [
    "MIN_WINDOW_MS",
    "OverlayItem",
    "OverlayStore",
    "clamp_position",
    "clamp_window",
    "default_window_end",
    "overlay_overlaps_frame",
]
