"""Cloud Functions entry point."""

import logging

from common import firebase_init
from functions import podcast_fns

# Configure basic logging for the application (primarily for emulator visibility)
logging.basicConfig(level=logging.INFO)

app = firebase_init.app

# Export the podcast functions
generate_lecture_podcast = podcast_fns.generate_lecture_podcast
get_lecture_podcast = podcast_fns.get_lecture_podcast
