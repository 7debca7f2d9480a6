"""Pipeline configuration."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pipeline settings."""

    # Supplied by the hosting site, drives display strings only
    LOCALE: str = "en"
    SITE_URL: str = "https://addtextgif.com"

    # Encoder settings
    ENCODER_WORKERS: int = 2
    ENCODER_QUALITY: int = 10  # 1 = best palette, 30 = fastest
    FILE_PREFIX: str = "addtextgif"

    # Preview playback
    PLAYBACK_FPS: float = 60.0

    # Extra directories searched for template fonts
    FONT_DIRS: list[Path] = []

    model_config = {"env_prefix": "ADDTEXTGIF_"}


class EditorStrings(BaseModel):
    """Translated strings the pipeline needs, injected by the host page."""

    model_config = {"populate_by_name": True}

    default_overlay_text: str = Field(default="Your caption here", alias="defaultOverlayText")
    generic_error: str = Field(default="Something went wrong. Please try again.", alias="genericError")
    no_frames: str = Field(default="No frames to render", alias="noFrames")
    render_aborted: str = Field(default="aborted", alias="renderAborted")
    invalid_gif: str = Field(default="The file could not be read as a GIF.", alias="invalidGif")
    empty_gif: str = Field(default="The GIF does not contain any frames.", alias="emptyGif")


settings = Settings()
