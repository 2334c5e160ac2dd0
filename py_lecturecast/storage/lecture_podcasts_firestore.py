"""Firestore persistence helpers for lecture podcasts."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, cast

from common import config, models
from google.cloud.firestore import (SERVER_TIMESTAMP, CollectionReference,
                                    DocumentReference, DocumentSnapshot)
from services import firestore as firestore_service

_SUMMARY_DATA_FIELD = 'summary_data'


class LectureNotFoundError(ValueError):
  """Raised when a lecture document does not exist."""


def _lecture_collection() -> CollectionReference:
  return firestore_service.db().collection(config.LECTURES_COLLECTION)


def _lecture_ref(lecture_id: str) -> DocumentReference:
  return _lecture_collection().document(lecture_id)


def _doc_dict(snapshot: DocumentSnapshot) -> dict[str, Any]:
  """Return snapshot data as a plain dict."""
  data = snapshot.to_dict()
  if not isinstance(data, dict):
    return {}
  return data


def _get_required_lecture_data(lecture_id: str) -> dict[str, Any]:
  lecture_id = (lecture_id or '').strip()
  if not lecture_id:
    raise LectureNotFoundError('lecture_id is required')
  doc = cast(DocumentSnapshot, _lecture_ref(lecture_id).get())
  if not doc.exists:
    raise LectureNotFoundError(f'Lecture {lecture_id} not found')
  return _doc_dict(doc)


def get_lecture_summary(lecture_id: str) -> models.LectureSummary:
  """Return the summary, concepts and script of a lecture.

  Raises:
    LectureNotFoundError: If the lecture does not exist.
  """
  data = _get_required_lecture_data(lecture_id)
  return models.LectureSummary.from_dict(data.get(_SUMMARY_DATA_FIELD))


def get_lecture_podcast(
  lecture_id: str,
) -> tuple[models.LectureSummary, models.LecturePodcast | None]:
  """Return a lecture's summary and its podcast audio, if generated.

  Raises:
    LectureNotFoundError: If the lecture does not exist.
  """
  data = _get_required_lecture_data(lecture_id)
  summary = models.LectureSummary.from_dict(data.get(_SUMMARY_DATA_FIELD))
  podcast = models.LecturePodcast.from_firestore_dict(data,
                                                       key=lecture_id.strip())
  return summary, podcast


def save_lecture_podcast(
  podcast: models.LecturePodcast,
  *,
  script: Sequence[models.ScriptLine],
) -> None:
  """Write the timed script and the podcast audio fields to the lecture.

  The script replaces the stored one so that playback can use the line
  timestamps on reload. Other summary fields are left untouched.
  """
  if not podcast.lecture_id:
    raise ValueError('LecturePodcast.lecture_id is required')

  update_data = podcast.to_dict()
  if podcast.audio_generated_date is None:
    update_data['audio_generated_date'] = SERVER_TIMESTAMP
  update_data[f'{_SUMMARY_DATA_FIELD}.script'] = [
    line.to_dict() for line in script
  ]
  _ = _lecture_ref(podcast.lecture_id).update(update_data)
