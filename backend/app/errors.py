"""
Error kinds raised by the prescription pipeline and their HTTP mapping.
Every error is request-scoped; none of them stops the process.
"""

import logging
from typing import Optional

from flask import Flask, jsonify

logger = logging.getLogger("medimate.errors")


class MediMateError(Exception):
    """Base class: carries a user-facing message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class Unauthorized(MediMateError):
    status_code = 401


class BadInput(MediMateError):
    status_code = 400


class NotFound(MediMateError):
    """Record absent or owned by somebody else – the two are never told apart."""

    status_code = 404


class UpstreamFailure(MediMateError):
    """The AI inference endpoint could not produce a usable answer."""

    status_code = 502


class GeminiTransportError(UpstreamFailure):
    """Connection, DNS, TLS or timeout failure talking to Gemini."""


class GeminiResponseError(UpstreamFailure):
    """Gemini answered with a non-2xx status."""

    def __init__(self, message: str, http_status: int, body: str = ""):
        super().__init__(message)
        self.http_status = http_status
        self.body = body


class GeminiBodyReadError(UpstreamFailure):
    """The response body could not be read off the wire."""


class GeminiDecodeError(UpstreamFailure):
    """The body was read but is not a valid generateContent envelope."""


class ParseFailure(MediMateError):
    """Stored analysis text is not valid structured data."""

    status_code = 500

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


class PersistenceFailure(MediMateError):
    status_code = 500


def register_error_handlers(app: Flask) -> None:
    """Render every MediMateError as ``{"error": message}`` with its status."""

    @app.errorhandler(MediMateError)
    def _handle_medimate_error(exc: MediMateError):
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        return jsonify({"error": exc.message}), exc.status_code
