"""
Analysis normalizer – turns the stored AI text back into a data tree.

Gemini is asked for JSON but sometimes wraps it in a markdown code fence.
The fence is removed by prefix/suffix only, then the text is parsed into an
AnalysisNode tree whose accessors never raise on a missing or mistyped key.
"""

import json
import logging
import re
from typing import Any, Iterator, List

from app.errors import ParseFailure

logger = logging.getLogger("medimate.normalizer")

MISSING_TEXT = "N/A"

_FENCE_OPEN_RE = re.compile(r"^```(?:json|JSON)[ \t]*\r?\n")
_FENCE_CLOSE_RE = re.compile(r"\r?\n```$")


def strip_code_fence(text: str) -> str:
    """
    Remove a leading ```json line and a trailing ``` line when both are present.
    Unfenced text is returned exactly as given.
    """
    candidate = text.strip()
    opening = _FENCE_OPEN_RE.match(candidate)
    if not opening:
        return text
    body = candidate[opening.end():]
    closing = _FENCE_CLOSE_RE.search(body)
    if not closing:
        return text
    return body[:closing.start()]


def parse_analysis(raw_text: str) -> "AnalysisNode":
    cleaned = strip_code_fence(raw_text)
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as exc:
        logger.error("Error parsing analysis data: %s | text=%r", exc, cleaned[:2000])
        raise ParseFailure("Error parsing analysis data.", raw_text=cleaned) from exc
    if not isinstance(data, dict):
        logger.error("Analysis is not a JSON object: %r", cleaned[:2000])
        raise ParseFailure("Error parsing analysis data.", raw_text=cleaned)
    return AnalysisNode(data)


def format_value(value: Any, default: str = MISSING_TEXT) -> str:
    """Render any JSON value as display text."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ", ".join(format_value(v, default) for v in value) or default
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, ensure_ascii=False)
    return str(value)


class AnalysisNode:
    """
    Read-only view over one JSON value (mapping, sequence, string, number,
    bool or null). Looking up a key that is absent, or indexing into a value
    of the wrong kind, yields an empty node instead of an error.
    """

    __slots__ = ("value",)

    def __init__(self, value: Any = None):
        self.value = value

    def __repr__(self):
        return f"AnalysisNode({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, AnalysisNode) and self.value == other.value

    @property
    def is_missing(self) -> bool:
        return self.value is None

    @property
    def is_mapping(self) -> bool:
        return isinstance(self.value, dict)

    @property
    def is_sequence(self) -> bool:
        return isinstance(self.value, list)

    def __contains__(self, key: str) -> bool:
        return self.is_mapping and key in self.value

    def get(self, key: str) -> "AnalysisNode":
        if self.is_mapping:
            return AnalysisNode(self.value.get(key))
        return AnalysisNode()

    def first_of(self, *keys: str) -> "AnalysisNode":
        """Value of the first key present, e.g. for tolerated spelling variants."""
        for key in keys:
            if key in self:
                return self.get(key)
        return AnalysisNode()

    def keys(self) -> List[str]:
        return list(self.value) if self.is_mapping else []

    def __iter__(self) -> Iterator["AnalysisNode"]:
        if self.is_sequence:
            return (AnalysisNode(v) for v in self.value)
        return iter(())

    def __len__(self) -> int:
        if self.is_sequence or self.is_mapping:
            return len(self.value)
        return 0

    def __bool__(self) -> bool:
        # False/0 are real answers; only absent or empty values are falsy.
        return self.value not in (None, "") and not (
            (self.is_sequence or self.is_mapping) and not self.value
        )

    def text(self, default: str = MISSING_TEXT) -> str:
        return format_value(self.value, default)

    def to_python(self) -> Any:
        return self.value
