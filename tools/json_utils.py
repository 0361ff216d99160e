"""JSON extraction from model responses."""

import json
import re
from typing import Union

# Precompiled regex for JSON extraction
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

# Lenient decoder that allows control characters (raw newlines, tabs) inside
# JSON strings; models frequently emit these instead of \n escapes.
_LENIENT_DECODER = json.JSONDecoder(strict=False)

JSONValue = Union[dict, list]


def _try_loads(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    return _LENIENT_DECODER.decode(text)


def parse_json_response(text: str) -> JSONValue:
    """Extract and parse a JSON object or array from model output.

    Tries the raw text, then a fenced ```json block, then the outermost
    brace or bracket span. Raises ValueError when nothing parses.
    """
    text = text.strip()

    try:
        return _try_loads(text)
    except json.JSONDecodeError:
        pass

    match = _JSON_FENCE_RE.search(text)
    if match:
        try:
            return _try_loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    # Prefer whichever container opens first
    spans = []
    for start_char, end_char in [("{", "}"), ("[", "]")]:
        start = text.find(start_char)
        end = text.rfind(end_char)
        if start != -1 and end > start:
            spans.append((start, end))
    for start, end in sorted(spans):
        try:
            return _try_loads(text[start:end + 1])
        except json.JSONDecodeError:
            continue

    raise ValueError(f"Failed to parse JSON from LLM response: {text[:200]}...")


def parse_json_list(text: str, key: str = "items") -> list:
    """Parse a response expected to hold a list.

    A bare array is returned as-is; an object wrapping the array under `key`
    (or under its only list-valued field) is unwrapped.
    """
    data = parse_json_response(text)
    if isinstance(data, list):
        return data
    if key in data and isinstance(data[key], list):
        return data[key]
    lists = [v for v in data.values() if isinstance(v, list)]
    if len(lists) == 1:
        return lists[0]
    raise ValueError(f"Expected a JSON list under '{key}'")
