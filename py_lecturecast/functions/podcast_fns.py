"""Lecture podcast cloud functions."""

import traceback

from common import models, podcast_operations, utils
from firebase_functions import https_fn, logger, options
from functions.function_utils import (error_response, get_bool_param,
                                      get_param, get_user_id,
                                      handle_cors_preflight,
                                      handle_health_check, success_response)
from services import cloud_storage
from services.audio_voices import VoiceGender
from storage import lecture_podcasts_firestore


def _parse_script(raw_script) -> list[models.ScriptLine]:
  """Parse a script posted in the request body."""
  if not isinstance(raw_script, list):
    raise ValueError('script must be a list of lines')
  lines = []
  for i, raw_line in enumerate(raw_script):
    if not isinstance(raw_line, dict):
      raise ValueError(f'script line {i} must be an object')
    lines.append(models.ScriptLine.from_dict(raw_line))
  return lines


def _audio_url(gcs_uri: str) -> str:
  if utils.is_emulator():
    return cloud_storage.get_public_url(gcs_uri)
  return cloud_storage.get_signed_url(gcs_uri)


def _require_user(req: https_fn.Request) -> https_fn.Response | None:
  """Return an error response if the caller is not signed in."""
  if utils.is_emulator():
    return None
  user_id = get_user_id(req, allow_unauthenticated=True)
  if not user_id:
    return error_response('User not authenticated', req=req, status=401)
  return None


@https_fn.on_request(
  memory=options.MemoryOption.GB_1,
  timeout_sec=1800,
)
def generate_lecture_podcast(req: https_fn.Request) -> https_fn.Response:
  """Generate the podcast audio for a lecture.

  Either `lecture_id` (the stored script is used and the result is saved) or
  an inline `script` (nothing is saved and the audio is returned as base64)
  must be given.
  """
  try:
    if response := handle_cors_preflight(req):
      return response

    if response := handle_health_check(req):
      return response

    if req.method != 'POST':
      return error_response(f'Method not allowed: {req.method}',
                            req=req,
                            status=405)

    if response := _require_user(req):
      return response

    lecture_id = get_param(req, 'lecture_id')
    raw_script = get_param(req, 'script')
    user_name = get_param(req, 'user_name')
    user_gender = VoiceGender.parse(get_param(req, 'user_gender'))
    include_audio_base64 = get_bool_param(req, 'include_audio_base64')

    if not lecture_id and raw_script is None:
      return error_response('lecture_id or script is required',
                            error_type='invalid_request',
                            req=req,
                            status=400)

    if lecture_id:
      logger.info(f'Generating podcast for lecture {lecture_id}')
      result, podcast = podcast_operations.generate_lecture_podcast(
        lecture_id,
        user_name=user_name,
        user_gender=user_gender,
      )
      audio_gcs_uri = podcast.audio_gcs_uri
    else:
      script = _parse_script(raw_script)
      logger.info(f'Generating podcast for inline script ({len(script)} lines)')
      result = podcast_operations.generate_podcast(
        script,
        user_name=user_name,
        user_gender=user_gender,
        label='inline script',
      )
      audio_gcs_uri = None
      include_audio_base64 = True

    data = {
      'script': [line.to_dict() for line in result.script],
      'audio_duration_sec': result.duration_sec,
      'failed_line_indexes': result.failed_line_indexes,
      'voices': result.voices.as_dict,
      'generation_cost_usd': result.generation_metadata.total_cost,
    }
    if audio_gcs_uri:
      data['audio_gcs_uri'] = audio_gcs_uri
      data['audio_url'] = _audio_url(audio_gcs_uri)
    if include_audio_base64:
      data['audio_base64'] = result.track.audio_base64
      data['audio_mime_type'] = 'audio/L16;rate=24000'

    return success_response(data, req=req)
  except lecture_podcasts_firestore.LectureNotFoundError as e:
    return error_response(str(e),
                          error_type='not_found',
                          req=req,
                          status=404)
  except ValueError as e:
    return error_response(str(e),
                          error_type='invalid_request',
                          req=req,
                          status=400)
  except podcast_operations.PodcastGenerationError as e:
    return error_response(f'Failed to generate podcast: {e}',
                          error_type='generation_failed',
                          req=req,
                          status=502)
  except Exception as e:
    stacktrace = traceback.format_exc()
    logger.error(f"Error generating podcast: {e}\nStacktrace:\n{stacktrace}")
    return error_response(f'Failed to generate podcast: {str(e)}',
                          req=req,
                          status=500)


@https_fn.on_request(
  memory=options.MemoryOption.MB_512,
  timeout_sec=60,
)
def get_lecture_podcast(req: https_fn.Request) -> https_fn.Response:
  """Return a lecture's timed script and podcast audio location."""
  try:
    if response := handle_cors_preflight(req):
      return response

    if response := handle_health_check(req):
      return response

    if req.method not in ['GET', 'POST']:
      return error_response(f'Method not allowed: {req.method}',
                            req=req,
                            status=405)

    if response := _require_user(req):
      return response

    lecture_id = get_param(req, 'lecture_id', required=True)
    summary, podcast = lecture_podcasts_firestore.get_lecture_podcast(
      lecture_id)

    data = {
      'lecture_id': lecture_id,
      'script': [line.to_dict() for line in summary.script],
      'summary_points': [p.to_dict() for p in summary.summary_points],
      'has_timestamps': summary.has_timestamps,
      'has_audio': podcast is not None,
    }
    if podcast:
      data['audio_gcs_uri'] = podcast.audio_gcs_uri
      data['audio_url'] = _audio_url(podcast.audio_gcs_uri)
      data['audio_duration_sec'] = podcast.audio_duration_sec
      data['failed_line_indexes'] = podcast.failed_line_indexes

    return success_response(data, req=req)
  except lecture_podcasts_firestore.LectureNotFoundError as e:
    return error_response(str(e),
                          error_type='not_found',
                          req=req,
                          status=404)
  except ValueError as e:
    return error_response(str(e),
                          error_type='invalid_request',
                          req=req,
                          status=400)
  except Exception as e:
    stacktrace = traceback.format_exc()
    logger.error(
      f"Error getting lecture podcast: {e}\nStacktrace:\n{stacktrace}")
    return error_response(f'Failed to get lecture podcast: {str(e)}',
                          req=req,
                          status=500)
