"""Cloud Storage access for podcast audio objects."""

import datetime

from common import config
from google.cloud import storage as gcs

_client = None  # pylint: disable=invalid-name

_GCS_SCHEME = "gs://"
_SIGNED_URL_TTL = datetime.timedelta(minutes=60)


def client() -> gcs.Client:
  """Get the Google Cloud Storage client."""
  global _client  # pylint: disable=global-statement
  if _client is None:
    _client = gcs.Client(project=config.PROJECT_ID)
  return _client


def parse_gcs_uri(gcs_uri: str) -> tuple[str, str]:
  """Split `gs://bucket/path/to/object` into (bucket, object name).

  Raises:
    ValueError: If the URI is not a gs:// URI naming an object.
  """
  if not gcs_uri.startswith(_GCS_SCHEME):
    raise ValueError(f"Invalid GCS URI format: {gcs_uri}")

  bucket_name, _, blob_name = gcs_uri.removeprefix(_GCS_SCHEME).partition("/")
  if not bucket_name or not blob_name:
    raise ValueError(f"Invalid GCS URI format: {gcs_uri}")
  return bucket_name, blob_name


def _blob(gcs_uri: str) -> gcs.Blob:
  bucket_name, blob_name = parse_gcs_uri(gcs_uri)
  return client().bucket(bucket_name).blob(blob_name)


def upload_bytes_to_gcs(
  content_bytes: bytes,
  gcs_uri: str,
  content_type: str,
) -> str:
  """Upload bytes as the object at `gcs_uri` and return the URI."""
  _blob(gcs_uri).upload_from_string(content_bytes, content_type=content_type)
  return gcs_uri


def get_audio_gcs_uri(file_name_base: str, extension: str) -> str:
  """A new, timestamped object URI in the audio bucket."""
  return get_gcs_uri(config.AUDIO_BUCKET_NAME, file_name_base, extension)


def get_gcs_uri(bucket: str, file_name_base: str, extension: str) -> str:
  """A new, timestamped object URI in `bucket`."""
  timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S_%f")
  return f"{_GCS_SCHEME}{bucket}/{file_name_base}_{timestamp}.{extension}"


def get_signed_url(gcs_uri: str) -> str:
  """A time-limited V4 signed GET URL for the object."""
  return _blob(gcs_uri).generate_signed_url(
    version="v4",
    expiration=_SIGNED_URL_TTL,
    method="GET",
  )


def get_public_url(gcs_uri: str) -> str:
  """The object's public URL (used with the storage emulator)."""
  return _blob(gcs_uri).public_url
