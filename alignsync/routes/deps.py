"""Shared route dependencies and error translation."""
import logging

import httpx
from fastapi import HTTPException, Request

from alignsync.services import AlignmentSession, ApiError, MissingApiKeyError

_logger = logging.getLogger("alignsync")


def get_session(request: Request) -> AlignmentSession:
    return request.app.state.session


def to_http_error(exc: Exception) -> HTTPException:
    """Map workflow errors onto HTTP status codes with a readable detail."""
    if isinstance(exc, MissingApiKeyError):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (ApiError, httpx.HTTPError)):
        _logger.warning("Remote call failed error=%s", exc)
        return HTTPException(status_code=502, detail=f"Error: {exc}")
    _logger.exception("Unexpected error error=%s", exc)
    return HTTPException(status_code=500, detail=str(exc))
