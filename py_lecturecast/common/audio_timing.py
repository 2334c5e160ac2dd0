"""Per-line timing within a stitched podcast track.

Each synthesized line becomes one contiguous span of the track. Spans are laid
end to end in script order; a line without audio has no span and does not
move the following lines.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field

from common import audio_operations, models


@dataclass(frozen=True, kw_only=True)
class LineOutcome:
  """The synthesis result for one script line."""

  index: int
  line: models.ScriptLine
  pcm_bytes: bytes | None = None
  """Raw PCM for the line, or None when the line has no audio."""

  error: str | None = None
  """Why synthesis failed, for lines that were attempted and failed."""

  metadata: models.SingleGenerationMetadata = field(
    default_factory=models.SingleGenerationMetadata)

  @property
  def has_audio(self) -> bool:
    """Whether the line produced audio."""
    return bool(self.pcm_bytes)

  @property
  def failed(self) -> bool:
    """Whether synthesis was attempted and failed."""
    return self.error is not None

  @property
  def duration_sec(self) -> float:
    """Duration of the line's audio (0 when it has none)."""
    if not self.pcm_bytes:
      return 0.0
    return audio_operations.pcm_duration_sec(len(self.pcm_bytes))


@dataclass(frozen=True)
class TimelineEntry:
  """The span of one line within the track."""

  line_index: int
  start_time: float
  end_time: float


@dataclass(frozen=True, kw_only=True)
class TimelineResult:
  """Timed script plus the ordered PCM chunks to stitch."""

  script: list[models.ScriptLine]
  pcm_chunks: list[bytes]
  timeline: list[TimelineEntry]
  duration_sec: float


def assign_timeline(outcomes: Sequence[LineOutcome]) -> TimelineResult:
  """Assign cumulative start/end times to the lines that have audio.

  Args:
    outcomes: Synthesis outcomes in script order, one per line.

  Returns:
    The full script (same length and order as `outcomes`) with timing set on
    lines that have audio and cleared on the rest, the PCM chunks in track
    order, and the total duration.
  """
  cursor = 0.0
  script: list[models.ScriptLine] = []
  chunks: list[bytes] = []
  timeline: list[TimelineEntry] = []

  for outcome in outcomes:
    if not outcome.has_audio:
      script.append(
        dataclasses.replace(outcome.line, start_time=None, end_time=None))
      continue

    duration = outcome.duration_sec
    start_time = cursor
    end_time = cursor + duration
    script.append(
      dataclasses.replace(outcome.line,
                          start_time=start_time,
                          end_time=end_time))
    timeline.append(TimelineEntry(outcome.index, start_time, end_time))
    chunks.append(outcome.pcm_bytes)
    cursor = end_time

  return TimelineResult(
    script=script,
    pcm_chunks=chunks,
    timeline=timeline,
    duration_sec=cursor,
  )
