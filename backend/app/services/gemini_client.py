"""
Gemini generateContent client.
Builds a single-turn request (text part + optional inline image part),
posts it with an explicit timeout and returns the first candidate's text.

There is no automatic retry. The call is idempotent, so callers may retry
on GeminiTransportError (no response headers arrived); every other failure,
including a body cut off mid-read, is final.
"""

import base64
import io
import json
import logging
from typing import Optional

import requests
from PIL import Image

from app.errors import (
    BadInput,
    GeminiBodyReadError,
    GeminiDecodeError,
    GeminiResponseError,
    GeminiTransportError,
)

logger = logging.getLogger("medimate.gemini")

NO_RESPONSE_TEXT = "No response from AI"
FALLBACK_MIME_TYPE = "application/octet-stream"

# Pillow formats whose file is a plain variant of another type.
# Multi-picture camera JPEGs (MPF segment) open as MPO.
_FORMAT_ALIASES = {"MPO": "JPEG"}


def sniff_mime_type(data: bytes) -> str:
    """Detect a content type from the payload itself, never from the uploader's claim."""
    if data.startswith(b"%PDF-"):
        return "application/pdf"
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = _FORMAT_ALIASES.get(img.format, img.format)
            return Image.MIME.get(fmt, FALLBACK_MIME_TYPE)
    except (OSError, Image.DecompressionBombError):
        return FALLBACK_MIME_TYPE


def build_request_body(prompt: str, image: Optional[bytes] = None) -> dict:
    """Assemble the ``contents`` envelope for one conversation turn."""
    if not prompt or not prompt.strip():
        raise BadInput("Instruction text must not be empty.")

    parts = [{"text": prompt}]
    if image:
        parts.append({
            "inline_data": {
                "mime_type": sniff_mime_type(image),
                "data": base64.b64encode(image).decode("ascii"),
            }
        })
    return {"contents": [{"parts": parts}]}


def extract_text(envelope) -> str:
    """
    Return the first text part of the first candidate.
    An envelope without candidates is a valid "nothing to say" answer.
    """
    if not isinstance(envelope, dict):
        raise GeminiDecodeError("AI service returned an unexpected response shape.")

    candidates = envelope.get("candidates") or []
    if not candidates:
        return NO_RESPONSE_TEXT

    try:
        text = candidates[0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GeminiDecodeError(f"AI service response is missing candidate text: {exc!r}")
    if not isinstance(text, str):
        raise GeminiDecodeError("AI service candidate text is not a string.")
    return text


class GeminiClient:
    """Blocking client bound to one endpoint, API key and timeout."""

    def __init__(self, api_key: str, api_url: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def generate(self, prompt: str, image: Optional[bytes] = None) -> str:
        body = build_request_body(prompt, image)
        logger.info(
            "Gemini request: prompt=%d chars, image=%s",
            len(prompt), f"{len(image)} bytes" if image else "none",
        )

        # stream=True: post() returns after the headers, the body is read below.
        try:
            resp = self._session.post(
                self.api_url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
                stream=True,
            )
        except requests.RequestException as exc:
            raise GeminiTransportError(f"AI service unreachable: {exc}") from exc

        try:
            raw = resp.content
        except requests.RequestException as exc:
            logger.error("Gemini response body read failed: %s", exc)
            raise GeminiBodyReadError(f"Could not read AI service response: {exc}") from exc
        finally:
            resp.close()

        if not 200 <= resp.status_code < 300:
            snippet = raw[:500].decode("utf-8", errors="replace")
            raise GeminiResponseError(
                f"AI service returned HTTP {resp.status_code}.",
                http_status=resp.status_code,
                body=snippet,
            )

        try:
            envelope = json.loads(raw)
        except ValueError as exc:
            raise GeminiDecodeError(f"AI service returned malformed JSON: {exc}") from exc

        return extract_text(envelope)

    def close(self) -> None:
        self._session.close()
