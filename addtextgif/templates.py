"""
Overlay templates - the static catalog of caption styles.

Each template defines how an overlay's text and its background box are
rendered: font stack, size and weight, colors, padding, corner radius and an
optional CSS-style shadow. Lookups never fail; unknown ids resolve to the
first catalog entry.
"""

from __future__ import annotations

from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_FONT_WEIGHT = 500
"Weight used when a template does not define one"


class Template(BaseModel):
    """A named, read-only caption style."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra='ignore',
    )

    id: str
    name: str
    description: str = Field(default='')
    font_family: str = Field(alias='fontFamily')
    font_size: int = Field(alias='fontSize', gt=0)
    font_weight: Optional[int] = Field(default=None, alias='fontWeight')
    color: str
    background_color: str = Field(alias='backgroundColor')
    padding: int = Field(default=0, ge=0)
    border_radius: int = Field(default=0, alias='borderRadius', ge=0)
    shadow: Optional[str] = Field(default=None)

    @property
    def effective_weight(self) -> int:
        """Font weight with the default applied."""
        return self.font_weight if self.font_weight is not None else DEFAULT_FONT_WEIGHT

    def to_api_dict(self) -> dict:
        """Serialize with the camelCase keys the editor front end expects."""
        return self.model_dump(by_alias=True, exclude_none=True)


OVERLAY_TEMPLATES: tuple[Template, ...] = (
    Template(
        id='classic',
        name='Classic Caption',
        description='Bold white text with shadow, perfect for meme-style captions.',
        font_family='Impact, Haettenschweiler, "Arial Black", sans-serif',
        font_size=36,
        font_weight=700,
        color='#ffffff',
        background_color='rgba(0,0,0,0.55)',
        padding=16,
        border_radius=4,
        shadow='0 2px 12px rgba(0,0,0,0.6)',
    ),
    Template(
        id='subtitle',
        name='Subtitle',
        description='Subtle white subtitle inspired by streaming platforms.',
        font_family='"Noto Sans", "Helvetica Neue", Arial, sans-serif',
        font_size=24,
        color='#f9fafb',
        background_color='rgba(17,24,39,0.75)',
        padding=12,
        border_radius=8,
        shadow='0 1px 6px rgba(15,23,42,0.45)',
    ),
    Template(
        id='highlight',
        name='Highlighted',
        description='Vibrant gradient bar that grabs attention in promotional GIFs.',
        font_family='"Poppins", "Segoe UI", sans-serif',
        font_size=28,
        font_weight=600,
        color='#111827',
        background_color='rgba(236,72,153,0.9)',
        padding=14,
        border_radius=9999,
        shadow='0 4px 20px rgba(236,72,153,0.35)',
    ),
    Template(
        id='minimal',
        name='Minimal',
        description='Clean typography with light background suited for tutorials.',
        font_family='"Inter", "Segoe UI", sans-serif',
        font_size=22,
        color='#111827',
        background_color='rgba(255,255,255,0.82)',
        padding=10,
        border_radius=12,
        shadow='0 10px 40px rgba(15,23,42,0.18)',
    ),
)
"The built-in templates, the first one is the default"


class TemplateCatalog:
    """
    Read-only lookup table of templates.

    The catalog is handed to the editor and the compositor at startup so a
    host can swap in its own set of styles without touching module state.
    """

    def __init__(self, templates: tuple[Template, ...] | list[Template] = OVERLAY_TEMPLATES):
        """
        :param templates: The templates in display order. Must not be empty.
        """
        if not templates:
            raise ValueError("A template catalog needs at least one template")
        self._templates = tuple(templates)
        self._by_id = {template.id: template for template in self._templates}

    @property
    def default(self) -> Template:
        """The fallback template (first entry)."""
        return self._templates[0]

    @property
    def ids(self) -> list[str]:
        """All template ids in display order."""
        return [template.id for template in self._templates]

    def by_id(self, template_id: str | None) -> Template:
        """
        Looks up a template.

        :param template_id: The template's id
        :return: The template or the default one if the id is unknown
        """
        if template_id is None:
            return self.default
        return self._by_id.get(template_id, self.default)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._by_id

    def __iter__(self) -> Iterator[Template]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)


default_catalog = TemplateCatalog()


def get_template(template_id: str | None) -> Template:
    """Returns the built-in template with given id, falling back to the first one."""
    return default_catalog.by_id(template_id)


__all__ = [
    "DEFAULT_FONT_WEIGHT",
    "OVERLAY_TEMPLATES",
    "Template",
    "TemplateCatalog",
    "default_catalog",
    "get_template",
]
