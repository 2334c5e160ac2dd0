"""Utility functions"""

import os
import re

_NON_ALPHANUMERIC_RE = re.compile(r'[^a-zA-Z0-9]')


def create_storage_key(*args: str, max_length: int = 20) -> str:
  """Creates a storage-safe key from the given arguments."""
  parts = [
    _NON_ALPHANUMERIC_RE.sub(
      '_',
      arg.lower()[:max_length],
    ).strip("_") for arg in args
  ]
  return '__'.join(parts)


def is_emulator() -> bool:
  """Returns True if the code is running in an emulator."""
  return bool(os.environ.get('FUNCTIONS_EMULATOR'))
