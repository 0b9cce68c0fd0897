"""
Application logging.

`configure_logging(app)` sets up `app.logger` from LOG_LEVEL and returns it;
that logger is the one handle the rest of the app logs through.
`register_request_logging(app)` logs every request and response with a
request id, redacting credentials in headers and JSON bodies.
"""
from __future__ import annotations

import json
import logging
import sys
import time
import uuid

from flask import g, request

LEVELS = {
    "off": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

HIDDEN = "(hidden)"
SENSITIVE_KEYS = {"password", "confirm", "token", "access_token", "refresh_token",
                  "auth_code", "secret", "api_key"}
SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie", "x-api-key", "x-auth-token"}
NO_BODY_METHODS = {"GET", "DELETE", "HEAD"}


def parse_level(name: str | None) -> int:
    return LEVELS.get((name or "").strip().lower(), logging.INFO)


def configure_logging(app) -> logging.Logger:
    logger = app.logger
    logger.setLevel(parse_level(app.config.get("LOG_LEVEL")))
    if not any(getattr(h, "_auth_api", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        handler._auth_api = True
        logger.addHandler(handler)
    return logger


def is_sensitive_key(key: str) -> bool:
    key = key.lower()
    return key in SENSITIVE_KEYS or "token" in key or "secret" in key or "password" in key


def is_sensitive_header(name: str) -> bool:
    name = name.lower()
    return name in SENSITIVE_HEADERS or "token" in name or "secret" in name


def redact(value):
    """Return a copy of a decoded JSON value with credential-like keys hidden."""
    if isinstance(value, dict):
        return {k: HIDDEN if is_sensitive_key(str(k)) else redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


def sanitize_headers(headers) -> dict:
    return {name: HIDDEN if is_sensitive_header(name) else value for name, value in headers.items()}


def _is_json(mimetype: str | None) -> bool:
    mimetype = (mimetype or "").lower()
    return "application/json" in mimetype or "+json" in mimetype


def _parse_redacted(raw: bytes):
    if not raw:
        return None
    try:
        return redact(json.loads(raw))
    except ValueError:
        return None


def register_request_logging(app, logger: logging.Logger) -> None:
    body_enabled = bool(app.config.get("LOG_HTTP_BODY_ENABLED"))
    max_bytes = int(app.config.get("LOG_HTTP_MAX_BODY_BYTES", 16384))

    @app.before_request
    def log_request():
        if not logger.isEnabledFor(logging.INFO):
            return
        g.request_id = str(uuid.uuid4())
        g.request_started = time.perf_counter()

        body = None
        if (
            body_enabled
            and request.method not in NO_BODY_METHODS
            and _is_json(request.mimetype)
            and request.content_length is not None
            and request.content_length <= max_bytes
        ):
            body = _parse_redacted(request.get_data(cache=True))

        logger.info(
            "--> %s %s %s headers=%s%s",
            g.request_id, request.method, request.path,
            sanitize_headers(request.headers),
            f" body={json.dumps(body)}" if body is not None else "",
        )

    @app.after_request
    def log_response(response):
        request_id = g.get("request_id")
        if request_id is None:
            return response
        duration_ms = int((time.perf_counter() - g.request_started) * 1000)

        body = None
        if body_enabled and _is_json(response.mimetype) and not response.direct_passthrough:
            length = response.content_length
            if length is None or length <= max_bytes:
                body = _parse_redacted(response.get_data())

        logger.info(
            "<-- %s %s %dms%s",
            request_id, response.status_code, duration_ms,
            f" body={json.dumps(body)}" if body is not None else "",
        )
        return response
