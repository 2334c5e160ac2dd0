"""Gemini speech generation voices.

Source: https://ai.google.dev/gemini-api/docs/speech-generation
"""

from __future__ import annotations

import enum


class VoiceGender(enum.Enum):
  """Voice genders."""

  FEMALE = "female"
  MALE = "male"

  @classmethod
  def parse(cls, value: str | None) -> VoiceGender | None:
    """Parse a request value ("female", "MALE", ...) into a gender.

    Empty values return None. Unknown values raise ValueError.
    """
    normalized = (value or "").strip().lower()
    if not normalized:
      return None
    try:
      return cls(normalized)
    except ValueError as e:
      allowed = sorted(g.value for g in cls)
      raise ValueError(
        f"Unknown gender: {value}. Allowed: {allowed}") from e

  @property
  def opposite(self) -> VoiceGender:
    """The complementary gender."""
    return VoiceGender.MALE if self is VoiceGender.FEMALE else VoiceGender.FEMALE


class Voice(enum.Enum):
  """Prebuilt Gemini voices with their attributes."""

  def __init__(self, voice_name: str, gender: VoiceGender, style: str):
    self._voice_name = voice_name
    self._gender = gender
    self._style = style

  @property
  def voice_name(self) -> str:
    """Get the API voice name."""

    return self._voice_name

  @property
  def gender(self) -> VoiceGender:
    """Get the voice gender."""

    return self._gender

  @property
  def style(self) -> str:
    """Get the one-word voice style from the provider's catalogue."""

    return self._style

  KORE = ("Kore", VoiceGender.FEMALE, "Firm")
  FENRIR = ("Fenrir", VoiceGender.MALE, "Excitable")
  PUCK = ("Puck", VoiceGender.MALE, "Upbeat")
  CHARON = ("Charon", VoiceGender.MALE, "Informative")
  LEDA = ("Leda", VoiceGender.FEMALE, "Youthful")
  AOEDE = ("Aoede", VoiceGender.FEMALE, "Breezy")
  SULAFAT = ("Sulafat", VoiceGender.FEMALE, "Warm")
  ACHIRD = ("Achird", VoiceGender.MALE, "Friendly")


# Voice used for a speaker of the given gender.
DEFAULT_VOICE_BY_GENDER: dict[VoiceGender, Voice] = {
  VoiceGender.FEMALE: Voice.KORE,
  VoiceGender.MALE: Voice.FENRIR,
}
