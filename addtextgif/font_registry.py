"""
Font registry for the caption renderer.

Templates describe fonts the way CSS does, as a family stack such as
``Impact, Haettenschweiler, "Arial Black", sans-serif`` plus a numeric
weight. This module resolves such a stack to a PIL font:

1. Each family of the stack is looked up in the configured font directories
   and PIL's system font search path, bold variations first for weights
   of 600 and above
2. Generic families (sans-serif, serif, monospace) map to common free fonts
3. If nothing matches, PIL's bundled default font is used at the requested size

Resolved fonts are cached per (stack, size, bold) for performance.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import RLock
from typing import Iterable

import PIL.ImageFont

logger = logging.getLogger(__name__)

BOLD_WEIGHT = 600
"Weights from this value on use a bold variation"

GENERIC_FAMILIES: dict[str, list[str]] = {
    "sans-serif": ["DejaVuSans", "LiberationSans", "Arial", "Helvetica"],
    "serif": ["DejaVuSerif", "LiberationSerif", "Times New Roman"],
    "monospace": ["DejaVuSansMono", "LiberationMono", "Courier New"],
}
"Free fonts tried for CSS generic families"

FontHandle = PIL.ImageFont.FreeTypeFont | PIL.ImageFont.ImageFont


def split_font_stack(font_family: str) -> list[str]:
    """
    Splits a CSS font-family stack into single family names.

    :param font_family: E.g. '"Noto Sans", Arial, sans-serif'
    :return: E.g. ['Noto Sans', 'Arial', 'sans-serif']
    """
    names = []
    for part in font_family.split(","):
        name = part.strip().strip("\"'").strip()
        if name:
            names.append(name)
    return names


def candidate_file_names(family: str, bold: bool) -> list[str]:
    """
    Returns the font file names tried for a family.

    :param family: The family name, e.g. "Noto Sans"
    :param bold: Whether a bold variation is wanted
    :return: File names in lookup order
    """
    bases = [family.replace(" ", ""), family.replace(" ", "-"), family]
    suffixes = ["-Bold", "Bold", " Bold", "bd"] if bold else []
    suffixes += ["-Regular", ""]
    names: list[str] = []
    for base in bases:
        for suffix in suffixes:
            name = f"{base}{suffix}.ttf"
            if name not in names:
                names.append(name)
    return names


class FontRegistry:
    """
    Resolves and caches the fonts used by overlay templates.

    Extra font directories can be registered, e.g. from
    :attr:`~addtextgif.config.Settings.FONT_DIRS`, so a deployment can ship
    the exact faces its templates ask for.
    """

    access_lock = RLock()
    "Multi-thread access lock, the encoder renders from worker threads"
    font_dirs: list[Path] = []
    "Additional directories searched before PIL's system search path"
    _cache: dict[tuple[str, int, bool], FontHandle] = {}
    "Resolved fonts"
    _warned: set[str] = set()
    "Font stacks for which the fallback warning was logged already"

    @classmethod
    def register_font_dir(cls, path: str | Path) -> None:
        """
        Registers a directory containing .ttf files.

        :param path: The directory
        """
        path = Path(path)
        with cls.access_lock:
            if path not in cls.font_dirs:
                cls.font_dirs.append(path)
                cls._cache.clear()

    @classmethod
    def register_font_dirs(cls, paths: Iterable[str | Path]) -> None:
        """Registers several font directories, e.g. ``Settings.FONT_DIRS``."""
        for path in paths:
            cls.register_font_dir(path)

    @classmethod
    def clear_cache(cls) -> None:
        """Forgets all resolved fonts."""
        with cls.access_lock:
            cls._cache.clear()
            cls._warned.clear()

    @classmethod
    def get_font(cls, font_family: str, size: int, weight: int = 400) -> FontHandle:
        """
        Returns a font for a CSS font stack.

        :param font_family: The CSS font-family stack
        :param size: The font size in pixels
        :param weight: The CSS font weight
        :return: The font handle. Never None, PIL's default font is the last resort.
        """
        bold = weight >= BOLD_WEIGHT
        cache_key = (font_family, size, bold)
        with cls.access_lock:
            if cache_key in cls._cache:
                return cls._cache[cache_key]

        font = None
        for family in split_font_stack(font_family):
            font = cls._load_family(family, size, bold)
            if font is None and bold:
                font = cls._load_family(family, size, False)
            if font is not None:
                break

        if font is None:
            with cls.access_lock:
                if font_family not in cls._warned:
                    cls._warned.add(font_family)
                    logger.warning(f"No font of '{font_family}' found, using PIL's default font")
            font = PIL.ImageFont.load_default(size=size)

        with cls.access_lock:
            cls._cache[cache_key] = font
        return font

    @classmethod
    def _load_family(cls, family: str, size: int, bold: bool) -> FontHandle | None:
        """Tries to load a single family, generic names expand to their free fonts."""
        families = GENERIC_FAMILIES.get(family.lower(), [family])
        for name in families:
            for file_name in candidate_file_names(name, bold):
                font = cls._try_load(file_name, size)
                if font is not None:
                    logger.debug(f"Resolved font '{family}' to {file_name}")
                    return font
        return None

    @classmethod
    def _try_load(cls, file_name: str, size: int) -> FontHandle | None:
        """Loads a font file from the registered directories or the system path."""
        with cls.access_lock:
            dirs = list(cls.font_dirs)
        for directory in dirs:
            path = directory / file_name
            if path.exists():
                try:
                    return PIL.ImageFont.truetype(str(path), size)
                except OSError as e:
                    logger.warning(f"Failed to load font from {path}: {e}")
        try:
            # PIL searches the system font directories
            return PIL.ImageFont.truetype(file_name, size)
        except OSError:
            return None


__all__ = [
    "BOLD_WEIGHT",
    "FontHandle",
    "FontRegistry",
    "GENERIC_FAMILIES",
    "candidate_file_names",
    "split_font_stack",
]
