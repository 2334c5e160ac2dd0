"""Audio client.

Synthesizes one podcast line per call. The provider-agnostic base class owns
throttling retries, cost calculation and logging; subclasses make the provider
call.
"""
from __future__ import annotations

import random
import re
import time
import traceback
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, override

from common import audio_operations, config, models
from firebase_functions import logger
from google import genai
from google.api_core.exceptions import ResourceExhausted
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from services.audio_voices import Voice

_T = TypeVar("_T")

_MIME_RATE_RE = re.compile(r"rate=(\d+)")


class Error(Exception):
  """Base class for exceptions in this module."""


class AudioGenerationError(Error):
  """Exception raised when audio for a line could not be generated."""


class AudioProviderUnavailableError(AudioGenerationError):
  """Exception raised when the provider cannot be used at all.

  E.g. the API key is missing or rejected. Retrying other lines will not help.
  """


class AudioModel(str, Enum):
  """Audio model names."""

  GEMINI_2_5_FLASH_TTS = "gemini-2.5-flash-preview-tts"
  GEMINI_2_5_PRO_TTS = "gemini-2.5-pro-preview-tts"


def is_rate_limit_error(error: Exception) -> bool:
  """Whether the error is the provider throttling us."""
  if isinstance(error, ResourceExhausted):
    return True
  if isinstance(error, genai_errors.ClientError) and error.code == 429:
    return True
  return False


def is_provider_unavailable_error(error: Exception) -> bool:
  """Whether the error means no request to the provider can succeed."""
  if isinstance(error, AudioProviderUnavailableError):
    return True
  if isinstance(error,
                genai_errors.ClientError) and error.code in (401, 403):
    return True
  return False


@dataclass(frozen=True, kw_only=True)
class RetryPolicy:
  """Exponential backoff with jitter, for throttling errors only."""

  max_retries: int = config.PODCAST_TTS_MAX_RETRIES
  initial_delay_sec: float = config.PODCAST_TTS_INITIAL_BACKOFF_SEC
  backoff_factor: float = config.PODCAST_TTS_BACKOFF_FACTOR
  max_jitter_sec: float = config.PODCAST_TTS_MAX_JITTER_SEC

  def next_delay_sec(self, retry_count: int, error: Exception) -> float | None:
    """Decide whether to retry after a failed call.

    Args:
      retry_count: Number of retries already made for this line.
      error: The error raised by the latest call.

    Returns:
      Seconds to wait before the next attempt, or None to give up.
    """
    if not is_rate_limit_error(error):
      return None
    if retry_count >= self.max_retries:
      return None
    delay = self.initial_delay_sec * (self.backoff_factor**retry_count)
    return delay + random.uniform(0, self.max_jitter_sec)


@dataclass(frozen=True, kw_only=True)
class SynthesizedLine:
  """Raw audio for one line."""

  pcm_bytes: bytes
  metadata: models.SingleGenerationMetadata = field(
    default_factory=models.SingleGenerationMetadata)

  @property
  def duration_sec(self) -> float:
    """Exact duration of the line's audio."""
    return audio_operations.pcm_duration_sec(len(self.pcm_bytes))


def get_audio_client(
  *,
  label: str,
  model: AudioModel = AudioModel.GEMINI_2_5_FLASH_TTS,
  retry_policy: RetryPolicy | None = None,
) -> AudioClient[Any]:
  """Get the appropriate audio client for the given model name."""

  if model in GeminiAudioClient.GENERATION_COSTS:
    return GeminiAudioClient(
      label=label,
      model=model,
      retry_policy=retry_policy or RetryPolicy(),
    )
  raise ValueError(f"Unknown audio model: {model}")


class AudioClient(ABC, Generic[_T]):
  """Abstract base class for audio clients."""

  def __init__(
    self,
    *,
    label: str,
    model: AudioModel,
    retry_policy: RetryPolicy,
  ):
    self.label: str = label
    self.model: AudioModel = model
    self.retry_policy: RetryPolicy = retry_policy

    self._model_client: _T | None = None

  @property
  def model_client(self) -> _T:
    """Get the underlying API client (lazily constructed)."""

    if self._model_client is None:
      self._model_client = self._create_model_client()
    return self._model_client

  @abstractmethod
  def _create_model_client(self) -> _T:
    """Create the underlying API client."""

  def synthesize_line(
    self,
    *,
    text: str,
    voice: Voice,
    role_label: str,
    label: str | None = None,
    extra_log_data: dict[str, Any] | None = None,
  ) -> SynthesizedLine | None:
    """Synthesize one line of dialogue as raw PCM.

    Args:
      text: The line to speak. Blank text is a no-op.
      voice: The voice to speak it with.
      role_label: The speaker's role, used in the prompt (e.g. "Host").
      label: A label for logging and metadata.
      extra_log_data: Extra log data to include in the log.

    Returns:
      The synthesized audio, or None if `text` is blank (no call is made).

    Raises:
      AudioProviderUnavailableError: If the provider cannot be used at all.
      AudioGenerationError: If the line failed, either with a non-retryable
        error or after exhausting retries on throttling.
    """
    text = (text or "").strip()
    if not text:
      return None

    label = label or self.label
    start_time = time.perf_counter()
    logger.info(f"{self.model.value} start: {label} ({voice.voice_name})")

    retry_count = 0
    while True:
      try:
        internal = self._synthesize_line_internal(
          text=text,
          voice=voice,
          role_label=role_label,
        )
        break
      except Exception as e:  # pylint: disable=broad-except
        if is_provider_unavailable_error(e):
          logger.error(
            "Audio provider unavailable:\n%s",
            traceback.format_exc(),
          )
          if isinstance(e, AudioProviderUnavailableError):
            raise
          raise AudioProviderUnavailableError(
            f"Audio provider {self.model.value} rejected the request ({label}): {e}"
          ) from e

        delay = self.retry_policy.next_delay_sec(retry_count, e)
        if delay is None:
          retryable_str = "retryable" if is_rate_limit_error(
            e) else "non-retryable"
          logger.error(
            "Audio call failed with %s error:\n%s",
            retryable_str,
            traceback.format_exc(),
          )
          if is_rate_limit_error(e):
            raise AudioGenerationError(
              f"Audio call to {self.model.value} ({label}) failed after " +
              f"{retry_count} retries:\n{e}") from e
          if isinstance(e, AudioGenerationError):
            raise
          raise AudioGenerationError(
            f"Audio call to {self.model.value} ({label}) failed with non-retryable error: {e}"
          ) from e

        retry_count += 1
        logger.warn(
          "Rate limited on %s, retrying in %.2f seconds... (%s/%s)",
          label,
          delay,
          retry_count,
          self.retry_policy.max_retries,
        )
        time.sleep(delay)

    token_counts = dict(internal.token_counts or {})
    _ = token_counts.setdefault("characters", len(internal.input_text))
    token_counts["audio_pcm_bytes"] = len(internal.pcm_bytes)

    billed_token_counts = self._get_billed_token_counts(token_counts)
    cost = self.calculate_generation_cost(billed_token_counts)

    metadata = models.SingleGenerationMetadata(
      label=label,
      model_name=self.model.value,
      token_counts=token_counts,
      generation_time_sec=time.perf_counter() - start_time,
      cost=cost,
      retry_count=retry_count,
    )
    result = SynthesizedLine(pcm_bytes=internal.pcm_bytes, metadata=metadata)

    _log_audio_response(
      internal.input_text,
      voice,
      result,
      {
        "voice_name": voice.voice_name,
        **(extra_log_data or {}),
      },
    )
    return result

  @abstractmethod
  def _synthesize_line_internal(
    self,
    *,
    text: str,
    voice: Voice,
    role_label: str,
  ) -> _AudioInternalResult:
    """Provider-specific audio generation implementation."""

  @abstractmethod
  def _get_generation_costs(self) -> dict[str, float]:
    """Get the generation costs in USD per token by token type."""

  def _get_billed_token_counts(self,
                               token_counts: dict[str, int]) -> dict[str, int]:
    """Return token counts used for billing.

    Subclasses can override this if token_counts includes non-billable keys.
    """

    return token_counts

  def calculate_generation_cost(self, token_counts: dict[str, int]) -> float:
    """Calculate the generation cost in USD."""

    total_cost = 0.0
    costs_by_token_type = self._get_generation_costs()
    for token_type, count in token_counts.items():
      if token_type not in costs_by_token_type:
        raise ValueError(
          f"""Unknown token type ({token_type}) for model {self.model.value}:
{token_counts}""")
      total_cost += costs_by_token_type[token_type] * int(count)
    return total_cost


@dataclass(frozen=True, kw_only=True)
class _AudioInternalResult:
  input_text: str
  pcm_bytes: bytes
  token_counts: dict[str, int]


class GeminiAudioClient(AudioClient[genai.Client]):
  """Gemini speech generation client (Google GenAI SDK, API-key auth)."""

  # https://ai.google.dev/gemini-api/docs/pricing (Speech generation)
  GENERATION_COSTS: dict[AudioModel, dict[str, float]] = {
    AudioModel.GEMINI_2_5_FLASH_TTS: {
      "prompt_tokens": 0.50 / 1_000_000,
      "output_tokens": 10.00 / 1_000_000,
    },
    AudioModel.GEMINI_2_5_PRO_TTS: {
      "prompt_tokens": 1.00 / 1_000_000,
      "output_tokens": 20.00 / 1_000_000,
    },
  }

  @override
  def _create_model_client(self) -> genai.Client:
    try:
      api_key = config.get_gemini_api_key()
    except Exception as e:
      raise AudioProviderUnavailableError(
        f"Could not load the Gemini API key: {e}") from e
    return genai.Client(api_key=api_key)

  @override
  def _synthesize_line_internal(
    self,
    *,
    text: str,
    voice: Voice,
    role_label: str,
  ) -> _AudioInternalResult:
    prompt = f"Speaker '{role_label}' says: \"{text}\""

    response: genai_types.GenerateContentResponse = self.model_client.models.generate_content(
      model=self.model.value,
      contents=prompt,
      config=genai_types.GenerateContentConfig(
        response_modalities=["AUDIO"],
        speech_config=genai_types.SpeechConfig(
          voice_config=genai_types.VoiceConfig(
            prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(
              voice_name=voice.voice_name))),
      ),
    )

    pcm_bytes = self._extract_pcm_bytes(response)
    return _AudioInternalResult(
      input_text=prompt,
      pcm_bytes=pcm_bytes,
      token_counts={
        **self._extract_token_counts(response),
        "characters": len(prompt),
      },
    )

  @override
  def _get_billed_token_counts(self,
                               token_counts: dict[str, int]) -> dict[str, int]:
    return {
      "prompt_tokens": int(token_counts.get("prompt_tokens", 0)),
      "output_tokens": int(token_counts.get("output_tokens", 0)),
    }

  @override
  def _get_generation_costs(self) -> dict[str, float]:
    if costs := self.GENERATION_COSTS.get(self.model):
      return costs
    raise ValueError(f"Unknown Gemini TTS model for pricing: {self.model}")

  @staticmethod
  def _extract_pcm_bytes(
      response: genai_types.GenerateContentResponse) -> bytes:
    try:
      if not response.candidates:
        raise AudioGenerationError("No candidates in Gemini response")
      candidate = response.candidates[0]
      if not candidate.content or not candidate.content.parts:
        raise AudioGenerationError("No content or parts in Gemini candidate")
      part = candidate.content.parts[0]
      if not part.inline_data or not part.inline_data.data:
        raise AudioGenerationError("No inline data in Gemini part")
      data = part.inline_data.data
      mime_type = getattr(part.inline_data, "mime_type", None)
    except Exception as e:
      raise AudioGenerationError(
        f"Gemini response missing inline audio data: {e}") from e

    # The timeline depends on every segment sharing the pipeline's format.
    if mime_type and (match := _MIME_RATE_RE.search(mime_type)):
      rate = int(match.group(1))
      if rate != config.PODCAST_SAMPLE_RATE_HZ:
        raise AudioGenerationError(
          f"Gemini returned {rate}Hz audio ({mime_type}), expected "
          f"{config.PODCAST_SAMPLE_RATE_HZ}Hz")

    return data

  @staticmethod
  def _extract_token_counts(
    response: genai_types.GenerateContentResponse, ) -> dict[str, int]:
    if response.usage_metadata is None:
      logger.warn("No usage metadata received from Gemini API")
      return {"prompt_tokens": 0, "cached_prompt_tokens": 0, "output_tokens": 0}

    cached_prompt_tokens = int(
      response.usage_metadata.cached_content_token_count or 0)
    prompt_token_count = int(response.usage_metadata.prompt_token_count or 0)
    output_tokens = int(response.usage_metadata.candidates_token_count or 0)
    prompt_tokens = max(prompt_token_count - cached_prompt_tokens, 0)

    return {
      "prompt_tokens": prompt_tokens,
      "cached_prompt_tokens": cached_prompt_tokens,
      "output_tokens": output_tokens,
    }


def _log_audio_response(
  text: str,
  voice: Voice,
  result: SynthesizedLine,
  extra_log_data: dict[str, Any] | None = None,
) -> None:
  """Log the synthesized line with its timing and cost."""

  metadata = result.metadata
  usage_str = "\n".join(f"{k}: {v}" for k, v in metadata.token_counts.items())
  num_chars = metadata.token_counts.get("characters", "?")

  log_parts: list[str] = []
  log_parts.append(f"""
============================== Input Text ({num_chars} chars) ==============================
{text}
""")

  log_parts.append(f"""
============================== Output Audio ==============================
Voice: {voice.voice_name} ({voice.gender.value})
PCM bytes: {len(result.pcm_bytes)}
Duration: {result.duration_sec:.3f} seconds
""")

  log_parts.append(f"""
============================== Metadata ==============================
Model: {metadata.model_name}
Generation time: {metadata.generation_time_sec:.2f} seconds
Retry count: {metadata.retry_count}
Generation cost: ${metadata.cost:.6f}
{usage_str}
""")

  header = f"Audio done: {metadata.label} ({metadata.model_name})"
  combined_log = header + "\n" + "\n\n".join(log_parts)

  log_extra_data = {
    "generation_cost_usd": metadata.cost,
    "generation_time_sec": metadata.generation_time_sec,
    "retry_count": metadata.retry_count,
    "model_name": metadata.model_name,
    "label": metadata.label,
    "duration_sec": result.duration_sec,
    **metadata.token_counts,
    **(extra_log_data or {}),
  }

  if len(combined_log) <= 65_000:
    logger.info(combined_log, extra={"json_fields": log_extra_data})
  else:
    num_parts = len(log_parts)
    for i, part in enumerate(log_parts):
      is_last_part = i == (num_parts - 1)
      if is_last_part:
        logger.info(f"{header}\n{part}", extra={"json_fields": log_extra_data})
      else:
        logger.info(f"{header}\n{part}")
