"""Request and response helpers shared by the HTTP functions."""

import json
from typing import Any

from common import config, utils
from firebase_admin import auth
from firebase_functions import https_fn, logger

_CORS_HEADERS = {
  "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
  "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

_EMULATOR_ORIGINS = frozenset({
  "http://127.0.0.1:5000",
  "http://localhost:5000",
  "http://localhost:5173",  # Vite
})

HEALTH_CHECK_PATH = "/__/health"


def _is_allowed_origin(origin: str) -> bool:
  origin = origin.rstrip("/")
  if utils.is_emulator():
    return origin in _EMULATOR_ORIGINS
  return origin == f"https://{config.ADMIN_HOST}"


def get_cors_headers(req: https_fn.Request | None) -> dict[str, str]:
  """CORS headers for the request's origin, or none if it is not allowed."""
  origin = req.headers.get("Origin") if req else None
  if not origin or not _is_allowed_origin(origin):
    return {}
  return {**_CORS_HEADERS, "Access-Control-Allow-Origin": origin}


def handle_cors_preflight(req: https_fn.Request) -> https_fn.Response | None:
  """Answer OPTIONS preflight requests."""
  if req.method != "OPTIONS":
    return None
  return https_fn.Response("",
                           status=204,
                           headers=get_cors_headers(req) or _CORS_HEADERS)


def handle_health_check(req: https_fn.Request) -> https_fn.Response | None:
  """Answer load balancer health checks."""
  if req.path != HEALTH_CHECK_PATH:
    return None
  return https_fn.Response("OK", status=200, headers=get_cors_headers(req))


def get_user_id(
  req: https_fn.Request,
  allow_unauthenticated: bool = False,
) -> str | None:
  """Return the uid from the request's Firebase ID token.

  Returns None if the token does not verify, or if there is no token and
  `allow_unauthenticated` is set.

  Raises:
    ValueError: If the Authorization header is missing (and required) or
      malformed.
  """
  auth_header = req.headers.get("Authorization")
  if not auth_header:
    if allow_unauthenticated:
      return None
    raise ValueError("Authorization header is missing")

  scheme, _, id_token = auth_header.partition(" ")
  if scheme.lower() != "bearer" or not id_token:
    raise ValueError("Malformed Authorization header")

  try:
    return auth.verify_id_token(id_token)["uid"]
  except Exception as e:  # pylint: disable=broad-except
    logger.error(f"Error verifying ID token: {e}")
    return None


def _json_response(
  payload: dict[str, Any],
  req: https_fn.Request | None,
  status: int,
) -> https_fn.Response:
  return https_fn.Response(
    json.dumps({"data": payload}),
    status=status,
    headers=get_cors_headers(req),
    mimetype="application/json",
  )


def success_response(
  data: dict[str, Any],
  req: https_fn.Request | None = None,
  status: int = 200,
) -> https_fn.Response:
  """JSON response wrapping `data` in the callable-style envelope."""
  return _json_response(data, req, status)


def error_response(
  message: str,
  *,
  error_type: str | None = None,
  req: https_fn.Request | None = None,
  status: int = 500,
) -> https_fn.Response:
  """JSON error response with an optional machine-readable error type."""
  logger.error(f"Error response ({status}, {error_type}): {message}")
  payload: dict[str, Any] = {"error": message}
  if error_type:
    payload["error_type"] = error_type
  return _json_response(payload, req, status)


def _request_data(req: https_fn.Request) -> dict[str, Any]:
  """Parameters from a JSON `{"data": {...}}` body, or the query string."""
  if not req.is_json:
    return req.args
  body = req.get_json()
  data = body.get("data") if isinstance(body, dict) else None
  return data if isinstance(data, dict) else {}


def get_param(
  req: https_fn.Request,
  param_name: str,
  default: Any | None = None,
  required: bool = False,
) -> Any | None:
  """Get a parameter from the request."""
  value = _request_data(req).get(param_name, default)
  if value is None and required:
    raise ValueError(f"Missing required parameter '{param_name}'")
  return value


def get_bool_param(
  req: https_fn.Request,
  param_name: str,
  default: bool = False,
) -> bool:
  """Get a boolean parameter; JSON booleans and "true"/"false" strings."""
  value = get_param(req, param_name)
  if value is None:
    return default
  if isinstance(value, bool):
    return value
  return str(value).strip().lower() == "true"
