"""Lecture podcast generation.

Turns a two-speaker script into one stitched audio track with exact per-line
timing. Lines are synthesized strictly one at a time, with a fixed pause
between calls, to stay under the speech provider's per-key rate limit.
"""

from __future__ import annotations

import datetime
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from common import audio_operations, audio_timing, config, models, utils
from common.podcast_voices import (VoiceAssignment, resolve_voices,
                                   roles_for_script)
from firebase_functions import logger
from services import audio_client, cloud_storage
from services.audio_voices import VoiceGender
from storage import lecture_podcasts_firestore


class Error(Exception):
  """Base class for exceptions in this module."""


class PodcastGenerationError(Error):
  """Raised when no usable podcast could be produced."""


@dataclass(frozen=True, kw_only=True)
class PodcastResult:
  """A generated podcast: timed script plus stitched track."""

  script: list[models.ScriptLine]
  track: audio_operations.Track
  timeline: list[audio_timing.TimelineEntry]
  voices: VoiceAssignment
  failed_line_indexes: list[int] = field(default_factory=list)
  generation_metadata: models.GenerationMetadata = field(
    default_factory=models.GenerationMetadata)

  @property
  def duration_sec(self) -> float:
    """Total track duration."""
    return self.track.duration_sec


def synthesize_script_lines(
  script: Sequence[models.ScriptLine],
  voices: VoiceAssignment,
  client: audio_client.AudioClient,
  *,
  delay_sec: float = config.PODCAST_INTER_CALL_DELAY_SEC,
  label: str = "podcast",
) -> list[audio_timing.LineOutcome]:
  """Synthesize every line in order, one call at a time.

  A failed line is recorded and skipped; it never stops the run. The only
  error that propagates is the provider being unavailable on the very first
  call, which means nothing can be synthesized.

  Args:
    script: The script lines, in playback order.
    voices: Speaker to voice mapping.
    client: The audio client used for each line.
    delay_sec: Pause before every call except the first.
    label: Label prefix for logs and generation metadata.

  Returns:
    One outcome per line, in script order.

  Raises:
    audio_client.AudioProviderUnavailableError: If the first call finds the
      provider unusable.
  """
  outcomes: list[audio_timing.LineOutcome] = []
  num_calls = 0

  for index, line in enumerate(script):
    if not line.text.strip():
      outcomes.append(audio_timing.LineOutcome(index=index, line=line))
      continue

    if num_calls and delay_sec > 0:
      time.sleep(delay_sec)
    num_calls += 1

    try:
      synthesized = client.synthesize_line(
        text=line.text,
        voice=voices.voice_for(line.speaker),
        role_label=voices.role_label(line.speaker),
        label=f"{label} line #{index}",
        extra_log_data={
          "line_index": index,
          "speaker": line.speaker,
        },
      )
    except audio_client.AudioProviderUnavailableError as e:
      if num_calls == 1:
        raise
      logger.error(f"Skipping line {index}: provider unavailable: {e}")
      outcomes.append(
        audio_timing.LineOutcome(index=index, line=line, error=str(e)))
      continue
    except audio_client.AudioGenerationError as e:
      logger.error(f"Skipping line {index}: {e}")
      outcomes.append(
        audio_timing.LineOutcome(index=index, line=line, error=str(e)))
      continue

    if synthesized is None:
      outcomes.append(audio_timing.LineOutcome(index=index, line=line))
      continue

    outcomes.append(
      audio_timing.LineOutcome(
        index=index,
        line=line,
        pcm_bytes=synthesized.pcm_bytes,
        metadata=synthesized.metadata,
      ))

  return outcomes


def generate_podcast(
  script: Sequence[models.ScriptLine],
  *,
  user_name: str | None = None,
  user_gender: VoiceGender | None = None,
  client: audio_client.AudioClient | None = None,
  delay_sec: float = config.PODCAST_INTER_CALL_DELAY_SEC,
  label: str = "podcast",
) -> PodcastResult:
  """Generate the podcast track and timed script for a script.

  Raises:
    PodcastGenerationError: If the script is empty, the provider is
      unavailable, or no line produced audio.
  """
  if not script:
    raise PodcastGenerationError("Script has no lines")

  roles = roles_for_script(script, user_name=user_name, user_gender=user_gender)
  voices = resolve_voices(roles)
  logger.info(f"Generating podcast {label} ({len(script)} lines) with voices "
              f"{voices.as_dict}")

  client = client or audio_client.get_audio_client(label=label)

  try:
    outcomes = synthesize_script_lines(
      script,
      voices,
      client,
      delay_sec=delay_sec,
      label=label,
    )
  except audio_client.AudioProviderUnavailableError as e:
    raise PodcastGenerationError(
      f"Speech provider unavailable for {label}: {e}") from e

  timeline_result = audio_timing.assign_timeline(outcomes)
  if not timeline_result.pcm_chunks:
    raise PodcastGenerationError(
      f"No audio was generated for any of the {len(script)} lines of {label}")

  track = audio_operations.stitch_pcm_segments(timeline_result.pcm_chunks)

  generation_metadata = models.GenerationMetadata()
  for outcome in outcomes:
    generation_metadata.add_generation(outcome.metadata)

  failed_line_indexes = [o.index for o in outcomes if o.failed]
  if failed_line_indexes:
    logger.warn(f"Podcast {label} skipped lines {failed_line_indexes}")

  logger.info(
    f"Podcast {label} done: {track.duration_sec:.2f}s from "
    f"{len(timeline_result.pcm_chunks)}/{len(script)} lines",
    extra={
      "json_fields": {
        "label": label,
        "num_lines": len(script),
        "num_timed_lines": len(timeline_result.pcm_chunks),
        "failed_line_indexes": failed_line_indexes,
        "duration_sec": track.duration_sec,
        "generation_cost_usd": generation_metadata.total_cost,
        "retry_count": generation_metadata.total_retry_count,
      }
    },
  )

  return PodcastResult(
    script=timeline_result.script,
    track=track,
    timeline=timeline_result.timeline,
    voices=voices,
    failed_line_indexes=failed_line_indexes,
    generation_metadata=generation_metadata,
  )


def generate_lecture_podcast(
  lecture_id: str,
  *,
  user_name: str | None = None,
  user_gender: VoiceGender | None = None,
  client: audio_client.AudioClient | None = None,
) -> tuple[PodcastResult, models.LecturePodcast]:
  """Generate, store and persist the podcast for a stored lecture.

  The WAV track is uploaded as its own object and the lecture document gets
  the timed script and the audio reference. Nothing is written if
  generation fails.

  Raises:
    lecture_podcasts_firestore.LectureNotFoundError: If the lecture is missing.
    PodcastGenerationError: If no usable podcast could be produced.
  """
  summary = lecture_podcasts_firestore.get_lecture_summary(lecture_id)
  label = f"lecture {lecture_id}"
  result = generate_podcast(
    summary.script,
    user_name=user_name,
    user_gender=user_gender,
    client=client,
    label=label,
  )

  gcs_uri = cloud_storage.get_audio_gcs_uri(
    utils.create_storage_key("podcast", lecture_id),
    "wav",
  )
  _ = cloud_storage.upload_bytes_to_gcs(
    result.track.wav_bytes,
    gcs_uri,
    content_type="audio/wav",
  )

  podcast = models.LecturePodcast(
    lecture_id=lecture_id,
    audio_gcs_uri=gcs_uri,
    audio_duration_sec=result.duration_sec,
    audio_generated_date=datetime.datetime.now(datetime.timezone.utc),
    failed_line_indexes=result.failed_line_indexes,
    generation_metadata=result.generation_metadata,
  )
  lecture_podcasts_firestore.save_lecture_podcast(podcast,
                                                  script=result.script)
  logger.info(f"Saved podcast for lecture {lecture_id} to {gcs_uri}")
  return result, podcast
