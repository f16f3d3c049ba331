"""Lenient parsing of collaborator responses.

Models answer with JSON wrapped in prose or markdown fences, sometimes with
trailing commentary. ``extract_json_array`` pulls out the first well-formed JSON
array; anything else raises ``ResponseParseError`` so the caller can fall back.
"""

import json
import re
from typing import Any, List, Optional

from trendpulse.core.errors import ResponseParseError
from trendpulse.core.logging import get_logger

logger = get_logger(__name__)

_GREEDY_ARRAY = re.compile(r"\[[\s\S]*\]")
_INTEGER = re.compile(r"-?[0-9]+")
_decoder = json.JSONDecoder()


def extract_json_array(text: Optional[str]) -> List[Any]:
    """
    Extract the first well-formed JSON array embedded in ``text``.

    Args:
        text: Raw response text

    Returns:
        Parsed list

    Raises:
        ResponseParseError: if no array can be decoded
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty response", raw_text=text)

    greedy = _GREEDY_ARRAY.search(text)
    if not greedy:
        raise ResponseParseError("No JSON array found in response", raw_text=text)

    try:
        parsed = json.loads(greedy.group(0))
        if isinstance(parsed, list):
            return parsed
    except json.JSONDecodeError:
        pass

    # Prose after the array may itself contain brackets; decode from each '['
    for match in re.finditer(r"\[", text):
        try:
            parsed, _ = _decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            return parsed

    logger.debug(f"Unparsable response: {text[:200]}")
    raise ResponseParseError("Response contains no well-formed JSON array", raw_text=text)


def coerce_index(value: Any) -> Optional[int]:
    """Integer index from a loosely-typed value, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    return None


def is_valid_index(value: Any, size: int) -> bool:
    index = coerce_index(value)
    return index is not None and 0 <= index < size


def resolve_index(value: Any, size: int) -> int:
    """
    Resolve a collaborator-supplied index against a list of ``size`` elements.

    Out-of-range or non-integer values alias to 0, the first element.

    Raises:
        ValueError: if ``size`` is zero
    """
    if size <= 0:
        raise ValueError("Cannot resolve an index into an empty sequence")

    index = coerce_index(value)
    if index is None or not 0 <= index < size:
        logger.debug(f"Index {value!r} outside 0..{size - 1}, using 0")
        return 0
    return index
