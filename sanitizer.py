"""
sanitizer.py
============
Recover the JSON object from a language-model reply.

Models wrap their answer in ```json fences, prepend chatter ("Here is the
parsed booking:") or append notes after the object. We strip the fences
and then try each '{' in turn, returning the first one that decodes to a
JSON object. Placeholders such as "{booking}" in the chatter are skipped.
When no candidate decodes, the first brace-balanced span is returned so
the validator can report what was wrong with it.
"""

import json
import logging
import re
from typing import Optional

from errors import NoJsonFound

logger = logging.getLogger(__name__)

# ```json / ```JSON / ```, anywhere in the text, not just at the edges
_RE_FENCE = re.compile(r"```[ \t]*(?:json)?", re.IGNORECASE)

_decoder = json.JSONDecoder()


def strip_code_fences(text: str) -> str:
    return _RE_FENCE.sub("", text or "")


def _balanced_object_from(text: str, start: int) -> Optional[int]:
    """
    Scan from the '{' at `start`; return the index of the matching '}' or
    None when the object never closes.
    """
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return pos
    return None


def _decoded_object_at(text: str, start: int) -> Optional[int]:
    """End index (exclusive) of the JSON object starting at `start`, if any."""
    try:
        obj, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError:
        return None
    return end if isinstance(obj, dict) else None


def sanitize(raw_model_text: str) -> str:
    """
    Return the first syntactically complete top-level JSON object in
    `raw_model_text`. Raises NoJsonFound when there is none.
    """
    cleaned = strip_code_fences(raw_model_text).strip()

    first_balanced = None
    start = cleaned.find("{")
    while start != -1:
        end = _decoded_object_at(cleaned, start)
        if end is not None:
            return cleaned[start:end]
        close = _balanced_object_from(cleaned, start)
        if close is None:
            # An unclosed '{' in leading prose; try the next one
            start = cleaned.find("{", start + 1)
            continue
        # A balanced span that is not JSON; its nested objects are not top-level
        if first_balanced is None:
            first_balanced = cleaned[start:close + 1]
        start = cleaned.find("{", close + 1)

    if first_balanced is not None:
        # hand it to the validator, which reports what is wrong with it
        return first_balanced

    logger.error("No JSON object found in model response: %s", (raw_model_text or "")[:300])
    raise NoJsonFound("No valid JSON object found in AI response", raw_text=raw_model_text or "")
