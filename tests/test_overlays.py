"""Tests for the overlay store."""

import pytest

from addtextgif.overlays import (
    MIN_WINDOW_MS,
    OverlayItem,
    OverlayStore,
    clamp_position,
    clamp_window,
    default_window_end,
    overlay_overlaps_frame,
)
from addtextgif.templates import Template, TemplateCatalog


@pytest.fixture
def store() -> OverlayStore:
    """A store bound to a 3 frame, 450ms animation."""
    store = OverlayStore()
    store.set_document(3, 450)
    return store


def assert_invariants(overlay: OverlayItem, total_duration: float):
    """Checks the window and position limits of an overlay."""
    assert overlay.start >= 0
    assert overlay.end >= overlay.start + MIN_WINDOW_MS
    if total_duration >= MIN_WINDOW_MS:
        assert overlay.end <= total_duration
    assert 0.05 <= overlay.x <= 0.95
    assert 0.05 <= overlay.y <= 0.95


class TestClamping:
    """Test the clamping helpers."""

    def test_clamp_position(self):
        """Test the position limits."""
        assert clamp_position(-1) == 0.05
        assert clamp_position(0.5) == 0.5
        assert clamp_position(3) == 0.95

    def test_clamp_window(self):
        """Test the window limits against the duration."""
        assert clamp_window(50, 300, 450) == (50, 300)
        assert clamp_window(-20, 300, 450) == (0, 300)
        assert clamp_window(400, 420, 450) == (350, 450)
        assert clamp_window(100, 120, 450) == (100, 200)
        assert clamp_window(0, 9000, 450) == (0, 450)

    def test_clamp_window_without_duration(self):
        """Test that 1000ms is used while the duration is unknown."""
        assert clamp_window(0, 5000, 0) == (0, 1000)
        assert clamp_window(2000, 2500, 0) == (900, 1000)

    def test_clamp_window_short_animation(self):
        """Test animations shorter than the minimum window."""
        assert clamp_window(30, 40, 60) == (0, 100)

    def test_default_window_end(self):
        """Test the window assigned to new overlays."""
        assert default_window_end(450) == 500
        assert default_window_end(2000) == 2000
        assert default_window_end(9000) == 4000
        assert default_window_end(0) == 4000


class TestOverlapRules:
    """Test export and preview activity."""

    def test_frame_inside_window(self):
        """Test a frame fully inside the window."""
        overlay = OverlayItem(start=200, end=800)
        assert overlay_overlaps_frame(overlay, 500, 200)

    def test_frame_starting_at_end(self):
        """Test that a frame starting at the window's end is excluded."""
        overlay = OverlayItem(start=200, end=800)
        assert not overlay_overlaps_frame(overlay, 800, 200)

    def test_frame_ending_at_start(self):
        """Test that a frame ending at the window's start is excluded."""
        overlay = OverlayItem(start=200, end=800)
        assert not overlay_overlaps_frame(overlay, 100, 100)
        assert overlay.overlaps_frame(150, 100)

    def test_preview_is_inclusive(self):
        """Test that preview activity includes both window ends."""
        overlay = OverlayItem(start=200, end=800)
        assert overlay.is_active_at(200)
        assert overlay.is_active_at(800)
        assert not overlay.is_active_at(800.5)
        assert not overlay.is_active_at(199)


class TestOverlayStore:
    """Test adding, updating and deleting overlays."""

    def test_add_requires_frames(self):
        """Test that nothing is added before a GIF is loaded."""
        store = OverlayStore()
        assert store.add() is None
        assert len(store) == 0

    def test_add_defaults(self, store):
        """Test the defaults of a new overlay."""
        overlay = store.add()
        assert overlay.text == "Your caption here"
        assert overlay.start == 0
        assert overlay.end == 500
        assert (overlay.x, overlay.y) == (0.5, 0.8)
        assert overlay.template_id == "classic"
        assert overlay in store.items

    def test_add_with_text_and_template(self, store):
        """Test explicit text and template."""
        overlay = store.add("Hello", "minimal")
        assert overlay.text == "Hello"
        assert overlay.template_id == "minimal"

    def test_ids_are_unique(self, store):
        """Test that every overlay has its own id."""
        ids = {store.add().id for _ in range(20)}
        assert len(ids) == 20

    def test_update(self, store):
        """Test a regular update."""
        overlay = store.add()
        updated = store.update(overlay.id, text="Hi", start=50, end=300, templateId="subtitle")
        assert updated.text == "Hi"
        assert (updated.start, updated.end) == (50, 300)
        assert updated.template_id == "subtitle"
        assert store.get(overlay.id) == updated

    def test_update_clamps(self, store):
        """Test that invariants hold after arbitrary updates."""
        overlay = store.add()
        for changes in [
            {"start": -100},
            {"end": 10_000},
            {"start": 440, "end": 445},
            {"x": -3, "y": 7},
            {"start": 300, "end": 100},
        ]:
            updated = store.update(overlay.id, **changes)
            assert_invariants(updated, 450)

    def test_update_ignores_id_and_unknown_fields(self, store):
        """Test that the id can not be changed."""
        overlay = store.add()
        updated = store.update(overlay.id, id="other", color="red")
        assert updated.id == overlay.id
        assert "other" not in store

    def test_update_unknown_id(self, store):
        """Test that unknown ids are ignored."""
        assert store.update("missing", text="x") is None
        assert len(store) == 0

    def test_move(self, store):
        """Test repositioning with clamping."""
        overlay = store.add()
        moved = store.move(overlay.id, 0.2, 1.5)
        assert (moved.x, moved.y) == (0.2, 0.95)

    def test_delete_is_idempotent(self, store):
        """Test that deleting twice equals deleting once."""
        first = store.add()
        second = store.add()
        store.delete(first.id)
        once = store.items
        store.delete(first.id)
        assert store.items == once == [second]

    def test_insertion_order(self, store):
        """Test that overlays keep their draw order across updates."""
        ids = [store.add(f"text {i}").id for i in range(3)]
        store.update(ids[0], text="changed")
        assert [overlay.id for overlay in store] == ids

    def test_set_total_duration_reclamps(self, store):
        """Test that a shorter duration re-clamps existing overlays."""
        overlay = store.add()
        store.update(overlay.id, start=200, end=450)
        store.set_total_duration(250)
        assert_invariants(store.get(overlay.id), 250)
        assert store.get(overlay.id).end == 250

    def test_active_at(self, store):
        """Test preview activity queries."""
        a = store.add("a")
        b = store.add("b")
        store.update(a.id, start=0, end=150)
        store.update(b.id, start=200, end=400)
        assert store.active_at(100) == [store.get(a.id)]
        assert store.active_at(150) == [store.get(a.id)]
        assert store.active_at(175) == []

    def test_active_during_frame(self, store):
        """Test export activity queries."""
        overlay = store.add()
        store.update(overlay.id, start=200, end=400)
        assert store.active_during_frame(100, 150) == [store.get(overlay.id)]
        assert store.active_during_frame(400, 50) == []

    def test_custom_catalog(self):
        """Test that the default template comes from the injected catalog."""
        catalog = TemplateCatalog([
            Template(id="plain", name="Plain", font_family="sans-serif", font_size=20,
                     color="#000", background_color="transparent"),
        ])
        store = OverlayStore(catalog, default_text="Caption")
        store.set_document(1, 100)
        overlay = store.add()
        assert overlay.template_id == "plain"
        assert overlay.text == "Caption"

    def test_api_dict(self, store):
        """Test the camelCase serialization."""
        data = store.add().to_api_dict()
        assert data["templateId"] == "classic"
        assert set(data) == {"id", "text", "start", "end", "x", "y", "templateId"}
