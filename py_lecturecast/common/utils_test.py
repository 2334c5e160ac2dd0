"""Tests for the utils module."""

from common import utils


def test_create_storage_key_sanitizes_and_joins():
  assert utils.create_storage_key("Podcast", "Lec 1/Intro") == (
    "podcast__lec_1_intro")


def test_create_storage_key_truncates_parts():
  key = utils.create_storage_key("x" * 30, max_length=5)

  assert key == "xxxxx"


def test_is_emulator(monkeypatch):
  monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)
  assert not utils.is_emulator()

  monkeypatch.setenv("FUNCTIONS_EMULATOR", "true")
  assert utils.is_emulator()
