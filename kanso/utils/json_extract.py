"""
Best-effort extraction of a JSON value embedded in free-form model text.

Used where the provider cannot enforce a response schema (search-grounded
and maps-grounded calls), so the prompt asks for one JSON value in a code
block and this module digs it out. Callers own the fallback when nothing
parses.
"""
import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


def _balanced_span_end(text: str, start: int) -> Optional[int]:
    """Index one past the bracket closing the one at `start`, or None"""
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_first_json_value(text: Optional[str], opener: str = "{") -> Optional[Any]:
    """
    Return the first balanced `{...}` (or `[...]`) span that parses as JSON.

    Args:
        text: Model output, possibly wrapped in prose or markdown fences
        opener: "{" to look for an object, "[" for an array

    Returns:
        Parsed dict/list, or None if no candidate span parses
    """
    if opener not in _CLOSERS:
        raise ValueError(f"Unsupported opener: {opener!r}")
    if not text:
        return None

    expected_type = dict if opener == "{" else list
    start = text.find(opener)
    while start != -1:
        end = _balanced_span_end(text, start)
        if end is not None:
            try:
                value = json.loads(text[start:end])
            except json.JSONDecodeError:
                value = None
            if isinstance(value, expected_type):
                return value
        start = text.find(opener, start + 1)

    logger.debug(f"No parseable JSON {opener!r} value in {len(text)} chars of text")
    return None
