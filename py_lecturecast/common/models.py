"""Models for the Firestore database."""

from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass, field
from typing import Any

NO_RELATED_POINT = -1


@dataclass
class SingleGenerationMetadata:
  """Cost and timing of one model call (one synthesized line)."""

  label: str = ""
  model_name: str = ""
  token_counts: dict[str, int] = field(default_factory=dict)
  generation_time_sec: float = 0
  cost: float = 0
  retry_count: int = 0

  @property
  def is_empty(self) -> bool:
    """Whether no call was made (no model name)."""
    return not self.model_name

  @property
  def as_dict(self) -> dict:
    """Convert to dictionary for Firestore storage."""
    return dataclasses.asdict(self)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> SingleGenerationMetadata:
    """Create SingleGenerationMetadata from Firestore dictionary."""
    return cls(**data)


@dataclass
class GenerationMetadata:
  """Cost and timing of all the calls behind one podcast."""

  generations: list[SingleGenerationMetadata] = field(default_factory=list)

  def add_generation(self, other: SingleGenerationMetadata | None) -> None:
    """Record a call; lines that made no call are skipped."""
    if other is not None and not other.is_empty:
      self.generations.append(other)

  @property
  def total_cost(self) -> float:
    """Total cost of all generations."""
    return sum(generation.cost for generation in self.generations)

  @property
  def total_retry_count(self) -> int:
    """Total number of retries across all generations."""
    return sum(generation.retry_count for generation in self.generations)

  @property
  def as_dict(self) -> dict:
    """Convert to dictionary for Firestore storage."""
    return {
      'generations': [generation.as_dict for generation in self.generations],
      'total_cost': self.total_cost,
      'total_retry_count': self.total_retry_count,
    }

  @classmethod
  def from_dict(cls, data: dict[str, Any] | None) -> GenerationMetadata:
    """Create GenerationMetadata from Firestore dictionary."""
    if not data:
      return cls()
    return cls(generations=[
      SingleGenerationMetadata.from_dict(generation)
      for generation in data.get('generations', [])
    ])


@dataclass(kw_only=True)
class ScriptLine:
  """One turn of the podcast dialogue."""

  speaker: str
  text: str

  related_point_index: int = NO_RELATED_POINT
  """Index of the summary point this line discusses, or -1 for small talk."""

  start_time: float | None = None
  """Start of the line within the stitched track, in seconds."""

  end_time: float | None = None
  """End of the line within the stitched track, in seconds."""

  @property
  def is_timed(self) -> bool:
    """Whether the line carries a position in the stitched track."""
    return self.start_time is not None and self.end_time is not None

  @property
  def has_related_point(self) -> bool:
    """Whether the line discusses a specific summary point."""
    return self.related_point_index >= 0

  def to_dict(self) -> dict:
    """Convert to dictionary for Firestore/response serialization.

    Timing keys are omitted until the line has been placed in a track.
    """
    data: dict[str, Any] = {
      'speaker': self.speaker,
      'text': self.text,
      'related_point_index': self.related_point_index,
    }
    if self.start_time is not None:
      data['start_time'] = self.start_time
    if self.end_time is not None:
      data['end_time'] = self.end_time
    return data

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> ScriptLine:
    """Create a ScriptLine from a Firestore or request dictionary."""
    related = data.get('related_point_index')
    start_time = data.get('start_time')
    end_time = data.get('end_time')
    return cls(
      speaker=str(data.get('speaker') or ''),
      text=str(data.get('text') or ''),
      related_point_index=(int(related)
                           if related is not None else NO_RELATED_POINT),
      start_time=float(start_time) if start_time is not None else None,
      end_time=float(end_time) if end_time is not None else None,
    )


@dataclass(kw_only=True)
class SummaryPoint:
  """A key concept card from the lecture summary."""

  point: str
  details: str = ""

  def to_dict(self) -> dict:
    """Convert to dictionary for Firestore storage."""
    return {'point': self.point, 'details': self.details}

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> SummaryPoint:
    """Create a SummaryPoint from a Firestore dictionary."""
    return cls(point=str(data.get('point') or ''),
               details=str(data.get('details') or ''))


@dataclass(kw_only=True)
class LectureSummary:
  """Summary, concept cards and podcast script generated for a lecture."""

  summary: str = ""
  summary_points: list[SummaryPoint] = field(default_factory=list)
  script: list[ScriptLine] = field(default_factory=list)

  @property
  def has_timestamps(self) -> bool:
    """Whether any script line has been placed in a stitched track."""
    return any(line.start_time is not None for line in self.script)

  def to_dict(self) -> dict:
    """Convert to dictionary for Firestore storage."""
    return {
      'summary': self.summary,
      'summary_points': [p.to_dict() for p in self.summary_points],
      'script': [line.to_dict() for line in self.script],
    }

  @classmethod
  def from_dict(cls, data: dict[str, Any] | None) -> LectureSummary:
    """Create a LectureSummary from a Firestore dictionary."""
    if not data:
      return cls()
    return cls(
      summary=str(data.get('summary') or ''),
      summary_points=[
        SummaryPoint.from_dict(p) for p in data.get('summary_points') or []
      ],
      script=[ScriptLine.from_dict(l) for l in data.get('script') or []],
    )


@dataclass(kw_only=True)
class LecturePodcast:
  """The podcast audio generated for a lecture."""

  lecture_id: str
  audio_gcs_uri: str
  audio_duration_sec: float
  audio_generated_date: datetime.datetime | None = None
  failed_line_indexes: list[int] = field(default_factory=list)
  generation_metadata: GenerationMetadata = field(
    default_factory=GenerationMetadata)

  def to_dict(self) -> dict:
    """Convert to dictionary for Firestore storage, without the lecture id."""
    return {
      'audio_gcs_uri': self.audio_gcs_uri,
      'audio_duration_sec': self.audio_duration_sec,
      'audio_generated_date': self.audio_generated_date,
      'failed_line_indexes': list(self.failed_line_indexes),
      'generation_metadata': self.generation_metadata.as_dict,
    }

  @classmethod
  def from_firestore_dict(cls, data: dict, key: str) -> LecturePodcast | None:
    """Create a LecturePodcast from a lecture document, if it has audio."""
    if not data or not data.get('audio_gcs_uri'):
      return None
    return cls(
      lecture_id=key,
      audio_gcs_uri=data['audio_gcs_uri'],
      audio_duration_sec=float(data.get('audio_duration_sec') or 0.0),
      audio_generated_date=data.get('audio_generated_date'),
      failed_line_indexes=[int(i) for i in data.get('failed_line_indexes') or []],
      generation_metadata=GenerationMetadata.from_dict(
        data.get('generation_metadata')),
    )
