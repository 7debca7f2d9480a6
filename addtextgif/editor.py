"""
Editor surface - binds decoding, the timeline, the overlay store and export.

:class:`GifEditor` is the controller behind the editing page. It owns the
loaded document and exposes the operations the page's widgets trigger:
loading a file, playback, overlay editing, dragging overlays on the preview
and exporting. Failures of the pipeline are caught here and stored as a
user-facing message in :attr:`GifEditor.error`, the editor stays usable.

Example:
    editor = GifEditor()
    await editor.load(gif_bytes)
    overlay = editor.add_overlay()
    editor.update_overlay(overlay.id, text="Hello", end=1500)
    result = await editor.export()
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .blob_store import BlobStore, blob_store as default_blob_store
from .compositor import composite_frame
from .config import EditorStrings, Settings, settings as default_settings
from .decoder import Frame, GifDocument, decode_gif_async
from .encoder import RenderResult, render_gif
from .errors import DecodeError, EmptyGifError, EncodeError
from .font_registry import FontRegistry
from .overlays import OverlayItem, OverlayStore
from .templates import TemplateCatalog, default_catalog
from .timeline import PlaybackClock, Timeline

logger = logging.getLogger(__name__)


class GifEditor:
    """
    Controller holding one loaded GIF and its overlays.

    Loading and exporting are the only suspending operations. While one of
    them runs :attr:`is_busy` is True and starting another raises
    ``RuntimeError``, callers are expected to disable their controls.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        catalog: TemplateCatalog | None = None,
        blob_store: BlobStore | None = None,
        strings: EditorStrings | None = None,
    ):
        """
        :param settings: Pipeline settings, the module settings if None
        :param catalog: Template catalog
        :param blob_store: Store receiving exported GIFs
        :param strings: Translated user-facing strings
        """
        self.settings = settings or default_settings
        self.catalog = catalog or default_catalog
        self.blob_store = blob_store or default_blob_store
        self.strings = strings or EditorStrings()
        FontRegistry.register_font_dirs(self.settings.FONT_DIRS)
        self.document: GifDocument | None = None
        self.timeline = Timeline()
        self.overlays = OverlayStore(self.catalog, default_text=self.strings.default_overlay_text)
        self.clock = PlaybackClock(self.timeline, fps=self.settings.PLAYBACK_FPS)
        self.result: RenderResult | None = None
        "The most recent export, at most one is held"
        self.error: str | None = None
        "Message of the last failure, cleared by the next successful operation"
        self._busy = False
        self._drag: tuple[str, float, float] | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_busy(self) -> bool:
        """Whether a load or export is in progress."""
        return self._busy

    @property
    def frames(self) -> tuple[Frame, ...]:
        """The loaded frames, empty before the first load."""
        return self.document.frames if self.document is not None else ()

    @property
    def can_export(self) -> bool:
        """Export needs frames, at least one overlay and no running job."""
        return bool(self.frames) and len(self.overlays) > 0 and not self._busy

    def current_frame(self) -> Frame | None:
        """The frame shown at the timeline cursor."""
        if not self.frames:
            return None
        return self.frames[self.timeline.current_frame_index]

    def preview_overlays(self) -> list[OverlayItem]:
        """Overlays visible at the timeline cursor."""
        return self.overlays.active_at(self.timeline.current_time)

    def render_preview(self) -> np.ndarray | None:
        """The current frame with the overlays visible at the cursor drawn on top."""
        frame = self.current_frame()
        if frame is None:
            return None
        return composite_frame(frame.pixels, self.preview_overlays(), self.catalog.by_id)

    def _enter(self) -> None:
        if self._busy:
            raise RuntimeError("The editor is busy")
        self._busy = True

    # -------------------------------------------------------------------------
    # Loading and export
    # -------------------------------------------------------------------------

    async def load(self, data: bytes) -> bool:
        """
        Decodes a GIF and makes it the edited document.

        On failure the previous document stays loaded.

        :param data: The GIF file's content
        :return: True if the GIF was loaded
        """
        self._enter()
        try:
            document = await decode_gif_async(data)
        except EmptyGifError as e:
            logger.warning(f"Loading GIF failed: {e}")
            self.error = self.strings.empty_gif
            return False
        except DecodeError as e:
            logger.warning(f"Loading GIF failed: {e}")
            self.error = self.strings.invalid_gif
            return False
        finally:
            self._busy = False

        self.timeline.pause()
        self._release_result()
        self._drag = None
        self.document = document
        self.timeline.load(document.frames)
        self.overlays.clear()
        self.overlays.set_document(len(document), document.total_duration)
        self.error = None
        return True

    async def export(self) -> RenderResult | None:
        """
        Renders the document with its overlays into a new GIF.

        :return: The new result, None if rendering failed
        :raises EncodeError: If no frames are loaded
        """
        if not self.frames:
            self.error = self.strings.no_frames
            raise EncodeError(self.strings.no_frames)
        self._enter()
        document = self.document
        assert document is not None
        try:
            result = await render_gif(
                document.frames,
                self.overlays.items,
                (document.width, document.height),
                templates=self.catalog.by_id,
                settings=self.settings,
                strings=self.strings,
                blob_store=self.blob_store,
            )
        except EncodeError as e:
            logger.warning(f"Export failed: {e}")
            self.error = str(e)
            return None
        finally:
            self._busy = False

        self._release_result()
        self.result = result
        self.error = None
        return result

    def _release_result(self) -> None:
        if self.result is not None:
            self.result.release()
            self.result = None

    # -------------------------------------------------------------------------
    # Playback
    # -------------------------------------------------------------------------

    def play(self) -> bool:
        """
        Starts preview playback. Needs a running event loop.

        :return: True if playing
        """
        if not self.timeline.play():
            return False
        self.clock.start()
        return True

    def pause(self) -> None:
        """Stops preview playback."""
        self.timeline.pause()

    def toggle_playback(self) -> None:
        """Play/pause button."""
        if self.timeline.is_playing:
            self.pause()
        else:
            self.play()

    def seek(self, t: float) -> None:
        """Moves the cursor, e.g. from the scrub slider."""
        self.timeline.seek(t)

    # -------------------------------------------------------------------------
    # Overlays
    # -------------------------------------------------------------------------

    def add_overlay(self, text: str | None = None, template_id: str | None = None) -> OverlayItem | None:
        """Adds an overlay, None while no GIF is loaded."""
        return self.overlays.add(text, template_id)

    def update_overlay(self, overlay_id: str, **changes: Any) -> OverlayItem | None:
        """Changes an overlay, unknown ids are ignored."""
        return self.overlays.update(overlay_id, **changes)

    def delete_overlay(self, overlay_id: str) -> None:
        """Removes an overlay, unknown ids are ignored."""
        if self._drag is not None and self._drag[0] == overlay_id:
            self._drag = None
        self.overlays.delete(overlay_id)

    # -------------------------------------------------------------------------
    # Dragging
    # -------------------------------------------------------------------------

    def begin_drag(self, overlay_id: str, pointer_x: float, pointer_y: float) -> bool:
        """
        Grabs an overlay at a pointer position.

        :param overlay_id: The overlay under the pointer
        :param pointer_x: Pointer x, normalized to the preview width
        :param pointer_y: Pointer y, normalized to the preview height
        :return: True if the overlay exists
        """
        overlay = self.overlays.get(overlay_id)
        if overlay is None:
            return False
        self._drag = (overlay_id, pointer_x - overlay.x, pointer_y - overlay.y)
        return True

    def drag_to(self, pointer_x: float, pointer_y: float) -> OverlayItem | None:
        """Moves the grabbed overlay, keeping the grab offset."""
        if self._drag is None:
            return None
        overlay_id, offset_x, offset_y = self._drag
        updated = self.overlays.move(overlay_id, pointer_x - offset_x, pointer_y - offset_y)
        if updated is None:
            self._drag = None
        return updated

    def end_drag(self) -> None:
        """Releases the grabbed overlay."""
        self._drag = None

    @property
    def dragging(self) -> str | None:
        """Id of the grabbed overlay."""
        return self._drag[0] if self._drag is not None else None

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def unmount(self) -> None:
        """Stops playback, frees the export and drops the document."""
        self.timeline.pause()
        self.clock.stop()
        self._release_result()
        self._drag = None
        self.document = None
        self.timeline.clear()
        self.overlays.clear()
        self.overlays.set_document(0, 0)



__all__ = ["GifEditor"]
