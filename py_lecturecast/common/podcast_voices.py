"""Speaker role to voice resolution for lecture podcasts.

A podcast is a dialogue between the student (the primary role, named after the
user) and a host (the counterpart). The student speaks with a voice matching
the user's gender and the host with the complementary one.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from common import config, models
from services.audio_voices import DEFAULT_VOICE_BY_GENDER, Voice, VoiceGender


@dataclass(frozen=True, kw_only=True)
class SpeakerRoles:
  """The two speaker names of a podcast and the primary speaker's gender."""

  primary_name: str
  counterpart_name: str
  primary_gender: VoiceGender | None = None

  @property
  def effective_primary_gender(self) -> VoiceGender:
    """Gender used for voice selection; unset is treated as male."""
    return self.primary_gender or VoiceGender.MALE


@dataclass(frozen=True, kw_only=True)
class VoiceAssignment:
  """Fixed mapping from speaker names to voices."""

  roles: SpeakerRoles
  primary_voice: Voice
  counterpart_voice: Voice

  def is_primary(self, speaker: str) -> bool:
    """Whether the speaker is the primary role."""
    return speaker == self.roles.primary_name

  def voice_for(self, speaker: str) -> Voice:
    """Voice for a speaker; unrecognized speakers use the counterpart voice."""
    if self.is_primary(speaker):
      return self.primary_voice
    return self.counterpart_voice

  def role_label(self, speaker: str) -> str:
    """Role label used in synthesis prompts."""
    return "Student" if self.is_primary(speaker) else "Host"

  @property
  def as_dict(self) -> dict[str, str]:
    """Speaker name to API voice name."""
    return {
      self.roles.primary_name: self.primary_voice.voice_name,
      self.roles.counterpart_name: self.counterpart_voice.voice_name,
    }


def resolve_voices(roles: SpeakerRoles) -> VoiceAssignment:
  """Assign voices to the two roles."""
  primary_gender = roles.effective_primary_gender
  return VoiceAssignment(
    roles=roles,
    primary_voice=DEFAULT_VOICE_BY_GENDER[primary_gender],
    counterpart_voice=DEFAULT_VOICE_BY_GENDER[primary_gender.opposite],
  )


def host_name_for(student_gender: VoiceGender | None) -> str:
  """Host name the script generator uses for a student of this gender."""
  if student_gender is VoiceGender.FEMALE:
    return config.HOST_NAME_FOR_FEMALE_STUDENT
  return config.HOST_NAME_FOR_MALE_STUDENT


def roles_for_script(
  script: Sequence[models.ScriptLine],
  *,
  user_name: str | None = None,
  user_gender: VoiceGender | None = None,
) -> SpeakerRoles:
  """Derive the speaker roles from the names that appear in a script.

  The script generator is asked to use the user's name and a host name that
  depends on the user's gender, but it does not always comply, so the names
  are matched against the script's actual speakers.
  """
  student_name = (user_name or "").strip() or config.DEFAULT_STUDENT_NAME
  expected_host = host_name_for(user_gender)

  speakers: list[str] = []
  for line in script:
    if line.speaker and line.speaker not in speakers:
      speakers.append(line.speaker)

  if student_name in speakers:
    primary = student_name
  else:
    # Hosts usually open the show, so the first speaker is not necessarily the
    # student.
    primary = next(
      (s for s in speakers if s not in config.KNOWN_HOST_NAMES), student_name)

  if expected_host in speakers:
    counterpart = expected_host
  else:
    counterpart = next((s for s in speakers if s != primary), expected_host)

  return SpeakerRoles(
    primary_name=primary,
    counterpart_name=counterpart,
    primary_gender=user_gender,
  )
