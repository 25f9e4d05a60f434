"""Tolerant parsing of JSON objects out of model responses."""

import json
import re

# ```json ... ``` or bare ``` ... ```
_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")

# A backslash that does not start a valid JSON escape
_BAD_ESCAPE_RE = re.compile(r'\\(?!["\\/bfnrtu])')


def _loads_object(text):
    """json.loads that only accepts an object. Returns None otherwise."""
    try:
        value = json.loads(text)
    # ValueError covers JSONDecodeError and the int digit limit
    except (ValueError, RecursionError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def extract_fenced_block(text):
    """Return the inner content of the first fenced code block, or None."""
    match = _FENCE_RE.search(text)
    return match.group(1) if match else None


def repair_escapes(text):
    """Double every backslash that is not a legal JSON escape (e.g. regex ``\\d``)."""
    return _BAD_ESCAPE_RE.sub(r"\\\\", text)


def safe_parse_json(text):
    """Parse a JSON object from model output. Never raises.

    Tries, in order:
        1. the raw text,
        2. the content of a ```json fenced block,
        3. the block (or raw text) with invalid escape sequences repaired.

    Returns an empty dict when nothing works.
    """
    if not isinstance(text, str):
        return {}

    parsed = _loads_object(text)
    if parsed is not None:
        return parsed

    block = extract_fenced_block(text)
    if block is not None:
        parsed = _loads_object(block)
        if parsed is not None:
            return parsed

    source = block if block else text
    parsed = _loads_object(repair_escapes(source))
    if parsed is not None:
        return parsed

    return {}
