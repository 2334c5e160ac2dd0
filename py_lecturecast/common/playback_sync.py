"""Playback to script synchronization.

Maps the player's current position to the script line being spoken and the
summary point (concept card) that line discusses.

Two lookup modes are chosen once per loaded script:

- `TimedMode`: the script carries per-line timestamps from the stitched track.
  Lookup is exact.
- `RatioMode`: legacy scripts without timestamps. Each line gets a share of the
  track proportional to its text length. Lookup is an approximation.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass

from common import models

NO_LINE = -1
NO_POINT = models.NO_RELATED_POINT


@dataclass(frozen=True)
class LineInterval:
  """A half-open `[start, end)` window for one script line."""

  line_index: int
  start: float
  end: float

  def contains(self, position: float) -> bool:
    """Whether the position falls inside the window."""
    return self.start <= position < self.end


@dataclass(frozen=True)
class TimedMode:
  """Lookup by absolute time in seconds."""

  intervals: tuple[LineInterval, ...]
  related_point_indexes: tuple[int, ...]


@dataclass(frozen=True)
class RatioMode:
  """Lookup by `current_time / duration`."""

  intervals: tuple[LineInterval, ...]
  related_point_indexes: tuple[int, ...]


SyncMode = TimedMode | RatioMode


@dataclass(frozen=True)
class SyncState:
  """Highlight state of a playback session."""

  active_line_index: int = NO_LINE
  active_point_index: int = NO_POINT
  expanded_point_index: int | None = None
  """The concept whose detail view is open, if any."""


def build_sync_mode(script: Sequence[models.ScriptLine]) -> SyncMode:
  """Choose and precompute the lookup mode for a script."""
  related = tuple(line.related_point_index for line in script)

  if any(line.start_time is not None for line in script):
    # Untimed lines (no audio) get no window and are never active.
    intervals = tuple(
      LineInterval(index, line.start_time, line.end_time)
      for index, line in enumerate(script) if line.is_timed)
    return TimedMode(intervals=intervals, related_point_indexes=related)

  total_length = sum(len(line.text) for line in script)
  if total_length <= 0:
    return RatioMode(intervals=(), related_point_indexes=related)

  intervals: list[LineInterval] = []
  position = 0
  for index, line in enumerate(script):
    start_ratio = position / total_length
    position += len(line.text)
    end_ratio = position / total_length
    intervals.append(LineInterval(index, start_ratio, end_ratio))
  return RatioMode(intervals=tuple(intervals), related_point_indexes=related)


def find_active_line(
  mode: SyncMode,
  current_time: float,
  duration: float,
) -> int:
  """Return the line index playing at `current_time`, or -1 if none."""
  if isinstance(mode, TimedMode):
    position = current_time
  else:
    position = current_time / duration if duration > 0 else 0.0

  for interval in mode.intervals:
    if interval.contains(position):
      return interval.line_index
  return NO_LINE


def advance(
  state: SyncState,
  current_time: float,
  duration: float,
  mode: SyncMode,
) -> SyncState:
  """Compute the sync state for a playback progress tick.

  Returns `state` itself when the active line does not change, including
  when no line matches the position (e.g. a gap left by a skipped line), so
  the highlight does not flicker off.
  """
  index = find_active_line(mode, current_time, duration)
  if index == NO_LINE or index == state.active_line_index:
    return state

  related = mode.related_point_indexes[index]
  if related >= 0:
    expanded = (related
                if state.expanded_point_index is not None else None)
    return SyncState(
      active_line_index=index,
      active_point_index=related,
      expanded_point_index=expanded,
    )

  return dataclasses.replace(state,
                             active_line_index=index,
                             active_point_index=NO_POINT)


def expand_point(state: SyncState, point_index: int) -> SyncState:
  """Open the detail view for a concept."""
  if point_index < 0:
    raise ValueError(f"point_index must be >= 0, got {point_index}")
  return dataclasses.replace(state, expanded_point_index=point_index)


def collapse_point(state: SyncState) -> SyncState:
  """Close the concept detail view."""
  return dataclasses.replace(state, expanded_point_index=None)


class PlaybackSync:
  """Sync state for one playback session.

  Loading a new script resets the state and rebuilds the lookup mode.
  """

  def __init__(self, script: Sequence[models.ScriptLine] | None = None):
    self._mode: SyncMode = build_sync_mode(())
    self._state = SyncState()
    if script is not None:
      self.load(script)

  @property
  def mode(self) -> SyncMode:
    """The lookup mode of the loaded script."""
    return self._mode

  @property
  def state(self) -> SyncState:
    """The current sync state."""
    return self._state

  @property
  def uses_timestamps(self) -> bool:
    """Whether the loaded script is synced by timestamps."""
    return isinstance(self._mode, TimedMode)

  def load(self, script: Sequence[models.ScriptLine]) -> None:
    """Load a new script and reset the state."""
    self._mode = build_sync_mode(script)
    self._state = SyncState()

  def on_progress(self, current_time: float, duration: float) -> bool:
    """Handle a playback progress tick.

    Returns:
      True if the state changed.
    """
    new_state = advance(self._state, current_time, duration, self._mode)
    changed = new_state is not self._state
    self._state = new_state
    return changed

  def expand_point(self, point_index: int) -> None:
    """Open the detail view for a concept."""
    self._state = expand_point(self._state, point_index)

  def collapse_point(self) -> None:
    """Close the concept detail view."""
    self._state = collapse_point(self._state)
