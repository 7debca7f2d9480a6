"""Tests for the template catalog."""

import pytest
from pydantic import ValidationError

from addtextgif.templates import (
    DEFAULT_FONT_WEIGHT,
    OVERLAY_TEMPLATES,
    Template,
    TemplateCatalog,
    default_catalog,
    get_template,
)


class TestTemplateCatalog:
    """Test template lookups."""

    def test_builtin_ids(self):
        """Test the built-in styles and their order."""
        assert default_catalog.ids == ["classic", "subtitle", "highlight", "minimal"]
        assert len(default_catalog) == len(OVERLAY_TEMPLATES)

    def test_lookup(self):
        """Test a lookup by id."""
        template = get_template("subtitle")
        assert template.name == "Subtitle"
        assert template.font_size == 24

    def test_unknown_id_falls_back_to_first(self):
        """Test that lookups never fail."""
        assert get_template("does-not-exist") is OVERLAY_TEMPLATES[0]
        assert get_template(None) is OVERLAY_TEMPLATES[0]
        assert default_catalog.by_id("") is default_catalog.default

    def test_contains(self):
        """Test membership checks."""
        assert "minimal" in default_catalog
        assert "nope" not in default_catalog

    def test_empty_catalog(self):
        """Test that a catalog needs a fallback template."""
        with pytest.raises(ValueError):
            TemplateCatalog([])


class TestTemplate:
    """Test the template model."""

    def test_default_weight(self):
        """Test that templates without a weight render at 500."""
        assert get_template("subtitle").font_weight is None
        assert get_template("subtitle").effective_weight == DEFAULT_FONT_WEIGHT == 500
        assert get_template("classic").effective_weight == 700

    def test_read_only(self):
        """Test that templates can not be modified."""
        with pytest.raises(ValidationError):
            get_template("classic").font_size = 10

    def test_api_dict(self):
        """Test the camelCase serialization."""
        data = get_template("highlight").to_api_dict()
        assert data["fontFamily"].startswith('"Poppins"')
        assert data["borderRadius"] == 9999
        assert data["backgroundColor"] == "rgba(236,72,153,0.9)"

    def test_from_camel_case(self):
        """Test that templates can be loaded from front end data."""
        template = Template.model_validate({
            "id": "custom",
            "name": "Custom",
            "fontFamily": "serif",
            "fontSize": 30,
            "color": "#fff",
            "backgroundColor": "#000",
            "padding": 4,
            "borderRadius": 2,
        })
        assert template.font_size == 30
        assert template.shadow is None
