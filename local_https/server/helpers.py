import logging
from http import HTTPStatus
from flask import Response, request

log = logging.getLogger(__name__)


def log_request(msg: str, level: str = "info") -> None:
    level = level.lower()
    log_fn = getattr(log, level, None)
    
    if not callable(log_fn):
        raise ValueError(f"Invalid log level: {level}")
    log_fn(f"{request.remote_addr} {request.method} {request.path} {msg}")


def build_response(code: int, *, msg: str | None = None) -> Response:
    body = f"{code} {HTTPStatus(code).phrase}"
    if msg is not None:
        body += f": {msg}"
    
    return Response(f"{body}\n", status=code, mimetype="text/plain")
