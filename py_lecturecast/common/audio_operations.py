"""Audio operations module."""

import base64
import io
import wave
from collections.abc import Iterable
from dataclasses import dataclass

from common import config

# --- Format Constants ---

# Bytes per second of podcast audio (24kHz, 16-bit, mono -> 48000).
PCM_BYTES_PER_SECOND = (config.PODCAST_SAMPLE_RATE_HZ *
                        config.PODCAST_SAMPLE_WIDTH_BYTES *
                        config.PODCAST_CHANNELS)

# Bytes encoded per base64 call. Must be a multiple of 3 so the encoded pieces
# concatenate to the same string as a one-shot encoding (no inner padding).
BASE64_ENCODE_CHUNK_BYTES = 3 * 0x8000


@dataclass(frozen=True)
class Track:
  """A stitched podcast track."""

  pcm_bytes: bytes
  """Raw LINEAR16 PCM for the whole track."""

  audio_base64: str
  """Transport encoding of `pcm_bytes`."""

  duration_sec: float
  """Sum of the stitched segment durations."""

  @property
  def is_empty(self) -> bool:
    """Whether the track has no audio."""
    return not self.pcm_bytes

  @property
  def wav_bytes(self) -> bytes:
    """The track wrapped in a WAV container for storage."""
    return pcm_to_wav_bytes(self.pcm_bytes)


def pcm_duration_sec(byte_length: int) -> float:
  """Exact playback duration of a raw PCM payload in the podcast format."""
  if byte_length < 0:
    raise ValueError(f"byte_length must be >= 0, got {byte_length}")
  return byte_length / PCM_BYTES_PER_SECOND


def encode_base64_chunked(
  data: bytes,
  chunk_size: int = BASE64_ENCODE_CHUNK_BYTES,
) -> str:
  """Base64-encode `data` in bounded pieces.

  Args:
    data: The bytes to encode.
    chunk_size: Bytes per piece; must be a positive multiple of 3.

  Returns:
    The same string as `base64.b64encode(data)`, as ASCII text.
  """
  if chunk_size <= 0 or chunk_size % 3:
    raise ValueError(
      f"chunk_size must be a positive multiple of 3, got {chunk_size}")

  view = memoryview(data)
  pieces = [
    base64.b64encode(view[offset:offset + chunk_size]).decode("ascii")
    for offset in range(0, len(view), chunk_size)
  ]
  return "".join(pieces)


def stitch_pcm_segments(segments: Iterable[bytes]) -> Track:
  """Concatenate ordered raw PCM segments into a single encoded track.

  The format is headerless LINEAR16, so stitching is a plain ordered append.
  Duration is summed per segment so that it matches the timeline built from
  the same segments.
  """
  buffer = io.BytesIO()
  duration_sec = 0.0
  for segment in segments:
    if not segment:
      continue
    buffer.write(segment)
    duration_sec += pcm_duration_sec(len(segment))

  pcm_bytes = buffer.getvalue()
  return Track(
    pcm_bytes=pcm_bytes,
    audio_base64=encode_base64_chunked(pcm_bytes),
    duration_sec=duration_sec,
  )


def pcm_to_wav_bytes(pcm_bytes: bytes) -> bytes:
  """Wrap raw podcast PCM in a WAV container."""
  buffer = io.BytesIO()
  with wave.open(buffer, "wb") as wav_file:
    # pylint: disable=no-member
    wav_file.setnchannels(config.PODCAST_CHANNELS)
    wav_file.setsampwidth(config.PODCAST_SAMPLE_WIDTH_BYTES)
    wav_file.setframerate(config.PODCAST_SAMPLE_RATE_HZ)
    wav_file.writeframes(pcm_bytes)
    # pylint: enable=no-member

  return buffer.getvalue()
