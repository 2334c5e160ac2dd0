"""Tests for the podcast_fns module."""
import json
from unittest.mock import MagicMock, patch

import pytest

from common import audio_operations, models, podcast_operations
from common.podcast_voices import SpeakerRoles, resolve_voices
from firebase_functions import https_fn
from functions import podcast_fns
from services.audio_voices import VoiceGender
from storage import lecture_podcasts_firestore


class DummyReq:
  """Dummy request class for testing."""

  def __init__(self,
               path="",
               args=None,
               method='POST',
               is_json=True,
               data=None,
               headers=None):
    self.path = path
    self.args = args or {}
    self.method = method
    self.is_json = is_json
    self.json = data or {}
    self.headers = headers or {}

  def get_json(self, silent=False):
    """Dummy get_json method."""
    if self.is_json:
      return {"data": self.json}
    if silent:
      return None
    raise TypeError("Request is not JSON")


@pytest.fixture(autouse=True, name="emulator")
def fixture_emulator(monkeypatch):
  monkeypatch.setenv("FUNCTIONS_EMULATOR", "true")


def _payload(resp: https_fn.Response) -> dict:
  return json.loads(resp.get_data(as_text=True))


def _result() -> podcast_operations.PodcastResult:
  track = audio_operations.stitch_pcm_segments([b"\x00\x00" * 24000])
  return podcast_operations.PodcastResult(
    script=[
      models.ScriptLine(speaker="Noa",
                        text="Welcome",
                        start_time=0.0,
                        end_time=1.0),
      models.ScriptLine(speaker="Sam", text="Skipped"),
    ],
    track=track,
    timeline=[],
    voices=resolve_voices(
      SpeakerRoles(primary_name="Sam", counterpart_name="Noa")),
    failed_line_indexes=[1],
  )


@patch('functions.podcast_fns.cloud_storage')
@patch('functions.podcast_fns.podcast_operations.generate_lecture_podcast')
def test_generate_lecture_podcast_for_stored_lecture(mock_generate,
                                                     mock_cloud_storage):
  result = _result()
  podcast = models.LecturePodcast(
    lecture_id="lec1",
    audio_gcs_uri="gs://lecturecast_audio/podcast.wav",
    audio_duration_sec=1.0,
  )
  mock_generate.return_value = (result, podcast)
  mock_cloud_storage.get_public_url.return_value = "http://emulator/podcast.wav"

  req = DummyReq(data={
    'lecture_id': 'lec1',
    'user_name': 'Sam',
    'user_gender': 'male',
  })

  resp = podcast_fns.generate_lecture_podcast(req)

  assert resp.status_code == 200
  mock_generate.assert_called_once_with(
    'lec1',
    user_name='Sam',
    user_gender=VoiceGender.MALE,
  )
  data = _payload(resp)['data']
  assert data['audio_gcs_uri'] == "gs://lecturecast_audio/podcast.wav"
  assert data['audio_url'] == "http://emulator/podcast.wav"
  assert data['audio_duration_sec'] == 1.0
  assert data['failed_line_indexes'] == [1]
  assert data['script'][0]['start_time'] == 0.0
  assert 'start_time' not in data['script'][1]
  assert 'audio_base64' not in data


@patch('functions.podcast_fns.podcast_operations.generate_podcast')
def test_generate_lecture_podcast_inline_script_returns_audio(mock_generate):
  result = _result()
  mock_generate.return_value = result

  req = DummyReq(data={
    'script': [
      {
        'speaker': 'Noa',
        'text': 'Welcome'
      },
      {
        'speaker': 'Sam',
        'text': 'Skipped',
        'related_point_index': 0
      },
    ],
  })

  resp = podcast_fns.generate_lecture_podcast(req)

  assert resp.status_code == 200
  script = mock_generate.call_args.args[0]
  assert [line.speaker for line in script] == ['Noa', 'Sam']
  assert script[1].related_point_index == 0
  data = _payload(resp)['data']
  assert data['audio_base64'] == result.track.audio_base64
  assert 'audio_gcs_uri' not in data


def test_generate_lecture_podcast_requires_lecture_or_script():
  resp = podcast_fns.generate_lecture_podcast(DummyReq(data={}))

  assert resp.status_code == 400
  assert _payload(resp)['data']['error_type'] == 'invalid_request'


def test_generate_lecture_podcast_rejects_bad_gender():
  resp = podcast_fns.generate_lecture_podcast(
    DummyReq(data={
      'lecture_id': 'lec1',
      'user_gender': 'robot'
    }))

  assert resp.status_code == 400


def test_generate_lecture_podcast_rejects_malformed_script():
  resp = podcast_fns.generate_lecture_podcast(
    DummyReq(data={'script': 'not a list'}))

  assert resp.status_code == 400


def test_generate_lecture_podcast_rejects_get():
  resp = podcast_fns.generate_lecture_podcast(DummyReq(method='GET'))

  assert resp.status_code == 405


@patch('functions.podcast_fns.podcast_operations.generate_lecture_podcast')
def test_generate_lecture_podcast_missing_lecture_is_404(mock_generate):
  mock_generate.side_effect = lecture_podcasts_firestore.LectureNotFoundError(
    'Lecture lec1 not found')

  resp = podcast_fns.generate_lecture_podcast(
    DummyReq(data={'lecture_id': 'lec1'}))

  assert resp.status_code == 404


@patch('functions.podcast_fns.podcast_operations.generate_lecture_podcast')
def test_generate_lecture_podcast_generation_failure_is_502(mock_generate):
  mock_generate.side_effect = podcast_operations.PodcastGenerationError(
    'No audio was generated')

  resp = podcast_fns.generate_lecture_podcast(
    DummyReq(data={'lecture_id': 'lec1'}))

  assert resp.status_code == 502
  assert _payload(resp)['data']['error_type'] == 'generation_failed'


@patch('functions.podcast_fns.podcast_operations.generate_lecture_podcast')
def test_generate_lecture_podcast_unexpected_error_is_500(mock_generate):
  mock_generate.side_effect = RuntimeError('firestore down')

  resp = podcast_fns.generate_lecture_podcast(
    DummyReq(data={'lecture_id': 'lec1'}))

  assert resp.status_code == 500


def test_generate_lecture_podcast_requires_auth_outside_emulator(monkeypatch):
  monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)

  resp = podcast_fns.generate_lecture_podcast(
    DummyReq(data={'lecture_id': 'lec1'}))

  assert resp.status_code == 401


def test_options_request_is_preflight():
  resp = podcast_fns.generate_lecture_podcast(DummyReq(method='OPTIONS'))

  assert resp.status_code == 204


@patch('functions.podcast_fns.cloud_storage')
@patch('functions.podcast_fns.lecture_podcasts_firestore.get_lecture_podcast')
def test_get_lecture_podcast_returns_timed_script(mock_get, mock_cloud_storage):
  summary = models.LectureSummary(
    summary_points=[models.SummaryPoint(point="BST", details="Ordered")],
    script=_result().script,
  )
  podcast = models.LecturePodcast(
    lecture_id="lec1",
    audio_gcs_uri="gs://lecturecast_audio/podcast.wav",
    audio_duration_sec=1.0,
    failed_line_indexes=[1],
  )
  mock_get.return_value = (summary, podcast)
  mock_cloud_storage.get_public_url.return_value = "http://emulator/p.wav"

  resp = podcast_fns.get_lecture_podcast(
    DummyReq(method='GET', is_json=False, args={'lecture_id': 'lec1'}))

  assert resp.status_code == 200
  data = _payload(resp)['data']
  assert data['has_audio'] is True
  assert data['has_timestamps'] is True
  assert data['audio_url'] == "http://emulator/p.wav"
  assert data['summary_points'] == [{'point': 'BST', 'details': 'Ordered'}]
  assert len(data['script']) == 2


@patch('functions.podcast_fns.cloud_storage')
@patch('functions.podcast_fns.lecture_podcasts_firestore.get_lecture_podcast')
def test_get_lecture_podcast_uses_signed_url_in_production(
    mock_get, mock_cloud_storage, monkeypatch):
  monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)
  monkeypatch.setattr(podcast_fns, 'get_user_id',
                      MagicMock(return_value='user-1'))
  podcast = models.LecturePodcast(
    lecture_id="lec1",
    audio_gcs_uri="gs://lecturecast_audio/podcast.wav",
    audio_duration_sec=1.0,
  )
  mock_get.return_value = (models.LectureSummary(), podcast)
  mock_cloud_storage.get_signed_url.return_value = "https://signed"

  resp = podcast_fns.get_lecture_podcast(
    DummyReq(data={'lecture_id': 'lec1'}))

  assert resp.status_code == 200
  assert _payload(resp)['data']['audio_url'] == "https://signed"
  mock_cloud_storage.get_public_url.assert_not_called()


@patch('functions.podcast_fns.lecture_podcasts_firestore.get_lecture_podcast')
def test_get_lecture_podcast_without_audio(mock_get):
  mock_get.return_value = (models.LectureSummary(), None)

  resp = podcast_fns.get_lecture_podcast(DummyReq(data={'lecture_id': 'lec1'}))

  data = _payload(resp)['data']
  assert data['has_audio'] is False
  assert 'audio_url' not in data


def test_get_lecture_podcast_requires_lecture_id():
  resp = podcast_fns.get_lecture_podcast(DummyReq(data={}))

  assert resp.status_code == 400


@patch('functions.podcast_fns.lecture_podcasts_firestore.get_lecture_podcast')
def test_get_lecture_podcast_missing_lecture_is_404(mock_get):
  mock_get.side_effect = lecture_podcasts_firestore.LectureNotFoundError(
    'Lecture lec1 not found')

  resp = podcast_fns.get_lecture_podcast(DummyReq(data={'lecture_id': 'lec1'}))

  assert resp.status_code == 404
