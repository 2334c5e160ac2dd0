"""Global configuration constants."""

from google.cloud import secretmanager

# Google Cloud Project ID
PROJECT_ID = "lecturecast-podcasts"

# Google Cloud Storage buckets
AUDIO_BUCKET_NAME = "lecturecast_audio"
ADMIN_HOST = "lecturecast.app"

# Firestore collections
LECTURES_COLLECTION = "lectures"

# Podcast audio format (raw LINEAR16 PCM as returned by Gemini speech generation)
PODCAST_SAMPLE_RATE_HZ = 24000
PODCAST_SAMPLE_WIDTH_BYTES = 2
PODCAST_CHANNELS = 1

# Podcast synthesis pacing
PODCAST_INTER_CALL_DELAY_SEC = 0.8
PODCAST_TTS_MAX_RETRIES = 3
PODCAST_TTS_INITIAL_BACKOFF_SEC = 1.0
PODCAST_TTS_BACKOFF_FACTOR = 2.0
PODCAST_TTS_MAX_JITTER_SEC = 1.0

# Podcast speakers
DEFAULT_STUDENT_NAME = "Student"
HOST_NAME_FOR_FEMALE_STUDENT = "Daniel"
HOST_NAME_FOR_MALE_STUDENT = "Noa"
KNOWN_HOST_NAMES = (HOST_NAME_FOR_FEMALE_STUDENT, HOST_NAME_FOR_MALE_STUDENT)


def _get_secret(secret_id: str) -> str:
  """Return the latest version of a Secret Manager secret as a UTF-8 string."""
  client = secretmanager.SecretManagerServiceClient()
  name = f"projects/{PROJECT_ID}/secrets/{secret_id}/versions/latest"
  response = client.access_secret_version(name=name)
  return response.payload.data.decode("UTF-8")


def get_gemini_api_key() -> str:
  """Gets the Gemini API key from the secret manager."""
  return _get_secret("GEMINI_API_KEY")
