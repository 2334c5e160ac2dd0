"""Tests for function_utils helpers."""

import json

import pytest

from functions import function_utils


class FakeArgs:

  def __init__(self, data: dict[str, object] | None = None) -> None:
    self._data = data or {}

  def get(self, key: str, default=None):  # pragma: no cover - simple helper
    return self._data.get(key, default)


class FakeRequest:

  def __init__(self,
               *,
               json_data: dict | None = None,
               args: dict[str, object] | None = None,
               headers: dict[str, str] | None = None,
               method: str = 'GET',
               path: str = '') -> None:
    self._json_data = json_data
    self.args = FakeArgs(args)
    self.is_json = json_data is not None
    self.headers = headers or {}
    self.method = method
    self.path = path

  def get_json(self):
    return self._json_data


def _json_request(data: dict | None = None) -> FakeRequest:
  return FakeRequest(json_data={'data': data or {}})


def _query_request(args: dict[str, object] | None = None) -> FakeRequest:
  return FakeRequest(args=args)


def test_get_param_returns_value_from_json_request():
  req = _json_request({'foo': 'bar'})

  assert function_utils.get_param(req, 'foo') == 'bar'


def test_get_param_raises_when_required_missing_json():
  req = _json_request()

  with pytest.raises(ValueError, match="Missing required parameter 'foo'"):
    function_utils.get_param(req, 'foo', required=True)


def test_get_param_raises_when_required_missing_query():
  req = _query_request()

  with pytest.raises(ValueError, match="Missing required parameter 'foo'"):
    function_utils.get_param(req, 'foo', required=True)


def test_get_param_returns_default_when_optional_missing():
  req = _query_request()

  assert function_utils.get_param(req, 'foo', default='fallback') == 'fallback'


def test_get_bool_param_parses_true_strings():
  assert function_utils.get_bool_param(_query_request({'flag': 'true'}),
                                       'flag') is True
  assert function_utils.get_bool_param(_query_request({'flag': 'no'}),
                                       'flag') is False


def test_get_bool_param_accepts_json_booleans():
  req = _json_request({'flag': True})

  assert function_utils.get_bool_param(req, 'flag') is True


def test_get_bool_param_returns_default_when_missing():
  assert function_utils.get_bool_param(_query_request(), 'flag') is False
  assert function_utils.get_bool_param(_query_request(),
                                       'flag',
                                       default=True) is True


def test_get_user_id_verifies_bearer_token(monkeypatch):

  def fake_verify_id_token(token):
    assert token == "id-token-123"
    return {"uid": "bearer-uid"}

  monkeypatch.setattr(function_utils.auth, "verify_id_token",
                      fake_verify_id_token)
  req = FakeRequest(headers={"Authorization": "Bearer id-token-123"})

  assert function_utils.get_user_id(req) == "bearer-uid"


def test_get_user_id_invalid_token_returns_none(monkeypatch):

  def fake_verify_id_token(token):
    raise ValueError(f"bad token {token}")

  monkeypatch.setattr(function_utils.auth, "verify_id_token",
                      fake_verify_id_token)
  req = FakeRequest(headers={"Authorization": "Bearer nope"})

  assert function_utils.get_user_id(req) is None


def test_get_user_id_missing_header():
  req = FakeRequest()

  assert function_utils.get_user_id(req, allow_unauthenticated=True) is None
  with pytest.raises(ValueError, match="Authorization header is missing"):
    function_utils.get_user_id(req)


def test_cors_headers_only_for_allowed_origins(monkeypatch):
  monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)

  allowed = FakeRequest(headers={"Origin": "https://lecturecast.app/"})
  other = FakeRequest(headers={"Origin": "https://evil.example"})

  headers = function_utils.get_cors_headers(allowed)
  assert headers["Access-Control-Allow-Origin"] == "https://lecturecast.app/"
  assert function_utils.get_cors_headers(other) == {}
  assert function_utils.get_cors_headers(None) == {}


def test_handle_cors_preflight():
  assert function_utils.handle_cors_preflight(FakeRequest()) is None

  response = function_utils.handle_cors_preflight(FakeRequest(method='OPTIONS'))

  assert response is not None
  assert response.status_code == 204


def test_handle_health_check():
  assert function_utils.handle_health_check(FakeRequest(path='/')) is None

  response = function_utils.handle_health_check(FakeRequest(path='/__/health'))

  assert response is not None
  assert response.status_code == 200


def test_success_and_error_responses_use_data_envelope():
  ok = function_utils.success_response({'a': 1})
  err = function_utils.error_response('bad',
                                      error_type='invalid_request',
                                      status=400)

  assert ok.status_code == 200
  assert json.loads(ok.get_data(as_text=True)) == {'data': {'a': 1}}
  assert err.status_code == 400
  assert json.loads(err.get_data(as_text=True)) == {
    'data': {
      'error': 'bad',
      'error_type': 'invalid_request',
    }
  }


def test_get_user_id_rejects_malformed_header():
  req = FakeRequest(headers={"Authorization": "token-without-scheme"})

  with pytest.raises(ValueError, match="Malformed"):
    function_utils.get_user_id(req)
