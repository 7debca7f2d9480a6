"""
AddTextGif - caption animated GIFs with timed text overlays
"""

from .errors import PipelineError, DecodeError, EmptyGifError, EncodeError
from .config import Settings, EditorStrings, settings
from .templates import Template, TemplateCatalog, OVERLAY_TEMPLATES, default_catalog, get_template
from .decoder import Frame, GifDocument, decode_gif, decode_gif_async, format_duration
from .timeline import Timeline, PlaybackClock, PlaybackState, FrameRange
from .overlays import OverlayItem, OverlayStore
from .compositor import composite_frame, draw_overlay
from .blob_store import BlobStore, blob_store
from .encoder import GifEncoder, RenderResult, render_gif
from .editor import GifEditor

__all__ = [
    # Errors
    "PipelineError",
    "DecodeError",
    "EmptyGifError",
    "EncodeError",
    # Configuration
    "Settings",
    "EditorStrings",
    "settings",
    # Templates
    "Template",
    "TemplateCatalog",
    "OVERLAY_TEMPLATES",
    "default_catalog",
    "get_template",
    # Decoding
    "Frame",
    "GifDocument",
    "decode_gif",
    "decode_gif_async",
    "format_duration",
    # Timeline
    "Timeline",
    "PlaybackClock",
    "PlaybackState",
    "FrameRange",
    # Overlays
    "OverlayItem",
    "OverlayStore",
    # Rendering
    "composite_frame",
    "draw_overlay",
    "BlobStore",
    "blob_store",
    "GifEncoder",
    "RenderResult",
    "render_gif",
    # Editor
    "GifEditor",
]

__version__ = "0.1.0"
