"""Tests for the timeline model and the playback clock."""

import asyncio
from unittest.mock import patch

import pytest

from addtextgif.timeline import (
    FrameRange,
    PlaybackClock,
    PlaybackState,
    Timeline,
    build_frame_offsets,
    resolve_frame_index,
)
from conftest import make_frames


@pytest.fixture
def timeline() -> Timeline:
    """A timeline over frames of 100, 150 and 200ms."""
    timeline = Timeline()
    timeline.load([100, 150, 200])
    return timeline


class TestFrameOffsets:
    """Test the frame offset table."""

    def test_offsets(self):
        """Test that ranges are contiguous and start at 0."""
        offsets = build_frame_offsets([100, 150, 200])
        assert offsets == [
            FrameRange(0, 0, 100),
            FrameRange(1, 100, 250),
            FrameRange(2, 250, 450),
        ]

    def test_exactly_one_range_contains_t(self):
        """Test that every time before the end is covered by exactly one frame."""
        offsets = build_frame_offsets([20, 100, 30, 70])
        for t in range(0, 220):
            assert sum(1 for r in offsets if r.contains(t)) == 1

    def test_resolve(self):
        """Test frame resolution at range boundaries."""
        offsets = build_frame_offsets([100, 150, 200])
        assert resolve_frame_index(offsets, 0) == 0
        assert resolve_frame_index(offsets, 99.9) == 0
        assert resolve_frame_index(offsets, 100) == 1
        assert resolve_frame_index(offsets, 249) == 1
        assert resolve_frame_index(offsets, 250) == 2

    def test_resolve_at_end(self):
        """Test that the end of the timeline resolves to the last frame."""
        offsets = build_frame_offsets([100, 150, 200])
        assert resolve_frame_index(offsets, 450) == 2
        assert resolve_frame_index(offsets, 10_000) == 2

    def test_resolve_empty(self):
        """Test that an empty table resolves to frame 0."""
        assert resolve_frame_index([], 50) == 0


class TestTimeline:
    """Test cursor and playback state."""

    def test_load(self, timeline):
        """Test the state after loading."""
        assert timeline.total_duration == 450
        assert timeline.frame_count == 3
        assert timeline.current_time == 0
        assert timeline.state == PlaybackState.PAUSED

    def test_load_frames(self):
        """Test that frames can be loaded directly."""
        timeline = Timeline()
        timeline.load(make_frames([100, 150, 200]))
        assert timeline.total_duration == 450

    def test_reload_resets(self, timeline):
        """Test that loading new frames resets cursor and playback."""
        timeline.play()
        timeline.seek(300)
        timeline.load([40, 40])
        assert timeline.current_time == 0
        assert timeline.total_duration == 80
        assert not timeline.is_playing

    def test_seek_clamps(self, timeline):
        """Test that seeking stays within [0, total_duration]."""
        timeline.seek(120)
        assert timeline.current_time == 120
        assert timeline.current_frame_index == 1
        timeline.seek(-50)
        assert timeline.current_time == 0
        timeline.seek(1000)
        assert timeline.current_time == 450
        assert timeline.current_frame_index == 2

    def test_progress(self, timeline):
        """Test the normalized progress."""
        timeline.seek(225)
        assert timeline.progress == pytest.approx(0.5)
        assert Timeline().progress == 0.0

    def test_play_pause(self, timeline):
        """Test the play and pause transitions."""
        assert timeline.play()
        assert timeline.is_playing
        timeline.seek(120)
        timeline.pause()
        assert not timeline.is_playing
        assert timeline.current_time == 120

    def test_toggle(self, timeline):
        """Test toggling playback."""
        timeline.toggle()
        assert timeline.is_playing
        timeline.toggle()
        assert not timeline.is_playing

    def test_advance_only_while_playing(self, timeline):
        """Test that a paused cursor does not move."""
        timeline.advance(100)
        assert timeline.current_time == 0
        timeline.play()
        timeline.advance(100)
        assert timeline.current_time == 100

    def test_advance_wraps(self, timeline):
        """Test that the cursor wraps around at the end."""
        timeline.play()
        timeline.seek(400)
        timeline.advance(100)
        assert timeline.current_time == pytest.approx(50)
        assert timeline.current_frame_index == 0

    def test_reset(self, timeline):
        """Test moving back to the start."""
        timeline.seek(300)
        timeline.reset()
        assert timeline.current_time == 0

    def test_zero_duration_can_not_play(self):
        """Test that an empty timeline refuses to play."""
        timeline = Timeline()
        assert not timeline.can_play
        assert not timeline.play()
        assert timeline.state == PlaybackState.PAUSED
        timeline.advance(100)
        assert timeline.current_time == 0

    def test_state_callbacks(self, timeline):
        """Test that state changes are reported once per change."""
        states = []
        timeline.on_state_change(states.append)
        timeline.play()
        timeline.play()
        timeline.pause()
        assert states == [PlaybackState.PLAYING, PlaybackState.PAUSED]

    def test_clear(self, timeline):
        """Test dropping all frames."""
        timeline.clear()
        assert timeline.frame_count == 0
        assert timeline.total_duration == 0
        assert timeline.offsets == []


class TestPlaybackClock:
    """Test the clock driving playback."""

    def test_invalid_fps(self, timeline):
        """Test that the tick rate must be positive."""
        with pytest.raises(ValueError):
            PlaybackClock(timeline, fps=0)

    @pytest.mark.asyncio
    async def test_tick_uses_measured_time(self, timeline):
        """Test that ticks advance by wall-clock deltas."""
        ticks = []
        clock = PlaybackClock(timeline, on_tick=ticks.append)
        timeline.play()
        with patch("addtextgif.timeline.time.perf_counter", return_value=10.0):
            clock.start()
        clock.stop()
        with patch("addtextgif.timeline.time.perf_counter", return_value=10.12):
            assert clock.tick() == pytest.approx(120)
        assert ticks == [pytest.approx(120)]

    @pytest.mark.asyncio
    async def test_runs_while_playing(self, timeline):
        """Test that a started clock moves the cursor."""
        clock = PlaybackClock(timeline, fps=100)
        timeline.play()
        clock.start()
        assert clock.is_running
        await asyncio.sleep(0.1)
        assert timeline.current_time > 0
        timeline.pause()
        assert not clock.is_running
        position = timeline.current_time
        await asyncio.sleep(0.05)
        assert timeline.current_time == position
