"""Defensive decoding of structured (JSON) model output.

Models asked for JSON may still answer with prose, truncated output or
Markdown code fences. parse_structured strips the known wrappers and decodes
strictly; safe_parse never raises and returns the caller's fallback instead.
"""

import json
import logging
import re
from typing import Any, Optional, Union

from zestislam.domain.models.errors import StructuredDecodeFailure

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_BOM = "\ufeff"


def strip_wrappers(raw_text: str) -> str:
    """Removes Markdown code fences, a leading 'json' tag and a byte-order mark."""
    text = raw_text.replace(_BOM, "").strip()
    match = _FENCE.match(text)
    if match:
        text = match.group(1).strip()
    if text[:4].lower() == "json" and text[4:5] in ("\n", "\r", " ", "{", "["):
        text = text[4:].strip()
    return text


def _embedded_payload(text: str) -> Optional[str]:
    """The outermost {...} or [...] span in text, if both ends are present."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closing = "}" if text[start] == "{" else "]"
    end = text.rfind(closing)
    if end <= start:
        return None
    return text[start:end + 1]


def parse_structured(raw_text: Optional[Union[str, bytes]]) -> Any:
    """Decodes structured output strictly.

    Raises:
        StructuredDecodeFailure: If nothing decodable is found.
    """
    if isinstance(raw_text, (bytes, bytearray)):
        raw_text = raw_text.decode("utf-8", errors="replace")
    if raw_text is None or not str(raw_text).strip():
        raise StructuredDecodeFailure("Empty response body", raw_text=raw_text)

    text = strip_wrappers(str(raw_text))
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError) as first_error:
        embedded = _embedded_payload(text)
        if embedded is not None and embedded != text:
            try:
                return json.loads(embedded)
            except (json.JSONDecodeError, RecursionError):
                pass
        raise StructuredDecodeFailure(f"Response is not valid JSON: {first_error}", raw_text=raw_text) from first_error


def safe_parse(raw_text: Optional[Union[str, bytes]], fallback: Any) -> Any:
    """Decodes structured output, returning `fallback` on any failure.

    When the fallback is a list or dict, a decoded value of a different
    container type is also rejected in favour of the fallback.
    """
    try:
        value = parse_structured(raw_text)
    except StructuredDecodeFailure as e:
        preview = str(raw_text or "")[:80].replace("\n", " ")
        logger.warning(f"Structured decode failed ({e}); using fallback. Preview: {preview!r}")
        return fallback

    if isinstance(fallback, (list, dict)) and not isinstance(value, type(fallback)):
        logger.warning(
            f"Decoded {type(value).__name__} where {type(fallback).__name__} was expected; using fallback."
        )
        return fallback
    return value
