"""Timeline model and preview playback clock.

The timeline maps a time cursor in milliseconds to a frame through a table
of cumulative frame delays. While playing, the cursor advances by measured
wall-clock deltas and wraps around at the end of the animation.

Example:
    from addtextgif.timeline import Timeline, PlaybackClock

    timeline = Timeline()
    timeline.load([100, 150, 200])
    timeline.seek(120)
    print(timeline.current_frame_index)  # 1

    clock = PlaybackClock(timeline, fps=60)
    timeline.play()
    clock.start()  # inside a running event loop
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Sequence

from .decoder import Frame


class PlaybackState(Enum):
    """Playback state machine."""

    PAUSED = "paused"
    PLAYING = "playing"


@dataclass(frozen=True)
class FrameRange:
    """The display window [start, end) of one frame in milliseconds."""

    index: int
    start: int
    end: int

    def contains(self, t: float) -> bool:
        """Whether the time lies within the half-open window."""
        return self.start <= t < self.end


def build_frame_offsets(delays: Iterable[int]) -> list[FrameRange]:
    """
    Builds the frame offset table.

    :param delays: The frame delays in milliseconds
    :return: Contiguous, non-overlapping ranges covering [0, sum(delays))
    """
    offsets = []
    acc = 0
    for index, delay in enumerate(delays):
        offsets.append(FrameRange(index=index, start=acc, end=acc + delay))
        acc += delay
    return offsets


def resolve_frame_index(offsets: Sequence[FrameRange], t: float) -> int:
    """
    Finds the frame shown at a given time.

    :param offsets: The frame offset table
    :param t: The time in milliseconds
    :return: The index of the first range containing t, the last frame if
        none does (end of timeline), 0 for an empty table
    """
    if not offsets:
        return 0
    for frame_range in offsets:
        if frame_range.contains(t):
            return frame_range.index
    return offsets[-1].index


class Timeline:
    """Scrubbable playback position over the loaded frames.

    ``total_duration`` is derived from the frame delays on every load. A
    timeline with a total duration of 0 can not play.
    """

    def __init__(self) -> None:
        self._offsets: list[FrameRange] = []
        self._total_duration: int = 0
        self._current_time: float = 0.0
        self._state = PlaybackState.PAUSED
        self._on_state_change: list[Callable[[PlaybackState], None]] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def current_time(self) -> float:
        """Cursor position in milliseconds."""
        return self._current_time

    @property
    def total_duration(self) -> int:
        """Sum of all frame delays in milliseconds."""
        return self._total_duration

    @property
    def state(self) -> PlaybackState:
        """Current playback state."""
        return self._state

    @property
    def is_playing(self) -> bool:
        """Whether the cursor is advancing."""
        return self._state == PlaybackState.PLAYING

    @property
    def frame_count(self) -> int:
        """Number of loaded frames."""
        return len(self._offsets)

    @property
    def offsets(self) -> list[FrameRange]:
        """The frame offset table."""
        return list(self._offsets)

    @property
    def current_frame_index(self) -> int:
        """Index of the frame shown at the cursor."""
        return resolve_frame_index(self._offsets, self._current_time)

    @property
    def progress(self) -> float:
        """Cursor position as 0.0-1.0."""
        if self._total_duration > 0:
            return self._current_time / self._total_duration
        return 0.0

    @property
    def can_play(self) -> bool:
        """Playback needs frames with a positive total duration."""
        return bool(self._offsets) and self._total_duration > 0

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def load(self, frames: Iterable[Frame] | Iterable[int]) -> None:
        """
        Loads new frames, resetting cursor and playback.

        :param frames: The frames or their delays in milliseconds
        """
        delays = [f.delay if isinstance(f, Frame) else int(f) for f in frames]
        self._offsets = build_frame_offsets(delays)
        self._total_duration = sum(delays)
        self._current_time = 0.0
        self._set_state(PlaybackState.PAUSED)

    def clear(self) -> None:
        """Drops all frames."""
        self.load([])

    def play(self) -> bool:
        """
        Starts playback.

        :return: True if playing. Refused without frames or with a zero total duration.
        """
        if not self.can_play:
            return False
        self._set_state(PlaybackState.PLAYING)
        return True

    def pause(self) -> None:
        """Freezes the cursor at its current value."""
        self._set_state(PlaybackState.PAUSED)

    def toggle(self) -> None:
        """Toggles between play and pause."""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def seek(self, t: float) -> None:
        """Moves the cursor, clamped to [0, total_duration]."""
        self._current_time = max(0.0, min(float(t), float(self._total_duration)))

    def reset(self) -> None:
        """Moves the cursor back to the start."""
        self._current_time = 0.0

    def advance(self, delta_ms: float) -> None:
        """
        Advances the cursor by elapsed wall-clock time while playing.

        The cursor wraps modulo the total duration so the animation loops forever.

        :param delta_ms: Elapsed time in milliseconds
        """
        if not self.is_playing or self._total_duration <= 0:
            return
        self._current_time = (self._current_time + max(0.0, delta_ms)) % self._total_duration

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def on_state_change(self, callback: Callable[[PlaybackState], None]) -> None:
        """Register a callback for state changes."""
        self._on_state_change.append(callback)

    def _set_state(self, state: PlaybackState) -> None:
        """Set state and notify callbacks."""
        old_state = self._state
        self._state = state
        if old_state != state:
            for callback in self._on_state_change:
                callback(state)


class PlaybackClock:
    """Repeating scheduled callback that drives a timeline while it plays.

    Mirrors a display refresh loop: every tick measures the time since the
    previous tick with ``time.perf_counter`` and advances the timeline by it.
    The clock stops itself when the timeline is paused.
    """

    def __init__(
        self,
        timeline: Timeline,
        fps: float = 60.0,
        on_tick: Callable[[float], None] | None = None,
    ):
        """
        :param timeline: The timeline to advance
        :param fps: Tick rate in Hz
        :param on_tick: Called after each tick with the new cursor position
        """
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.timeline = timeline
        self.interval = 1.0 / fps
        self.on_tick = on_tick
        self._task: asyncio.Task | None = None
        self._last_tick: float = 0.0
        timeline.on_state_change(self._handle_state_change)

    @property
    def is_running(self) -> bool:
        """Whether the schedule is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Starts the schedule. Requires a running event loop."""
        if self.is_running:
            return
        self._last_tick = time.perf_counter()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancels the schedule."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def tick(self) -> float:
        """
        Advances the timeline by the time since the last tick.

        :return: The new cursor position
        """
        now = time.perf_counter()
        delta_ms = (now - self._last_tick) * 1000.0
        self._last_tick = now
        self.timeline.advance(delta_ms)
        if self.on_tick is not None:
            self.on_tick(self.timeline.current_time)
        return self.timeline.current_time

    async def _run(self) -> None:
        while self.timeline.is_playing:
            await asyncio.sleep(self.interval)
            self.tick()

    def _handle_state_change(self, state: PlaybackState) -> None:
        if state == PlaybackState.PAUSED:
            self.stop()


__all__ = [
    "FrameRange",
    "PlaybackClock",
    "PlaybackState",
    "Timeline",
    "build_frame_offsets",
    "resolve_frame_index",
]
