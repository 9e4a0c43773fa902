"""Recovery of the JSON object embedded in a model reply.

Models sometimes wrap their answer in markdown fences or put a sentence in
front of it. The reply is accepted when, after fence stripping, it holds one
balanced top-level object with nothing but whitespace after it.
"""

import json
import re
from typing import Any

from src.errors import MalformedJSONError, MissingJSONError, TrailingContentError
from src.utils.logger import get_logger

logger = get_logger(__name__)

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?```$")


def strip_fences(text: str) -> str:
    """Remove a leading and a trailing markdown code fence.

    Args:
        text: Raw model reply.

    Returns:
        The trimmed reply without fence markers.
    """
    text = text.strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _find_object_end(text: str, start: int) -> int | None:
    """Return the index of the brace closing the object opened at ``start``.

    Braces inside JSON strings are ignored.
    """
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
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_json_object(text: str) -> str:
    """Locate the first balanced top-level ``{...}`` block.

    Args:
        text: Fence-stripped model reply.

    Returns:
        The block, from its opening to its closing brace.

    Raises:
        MissingJSONError: If there is no opening brace, or it is never closed
            and the text does not end with a closing brace.
        TrailingContentError: If anything but whitespace follows the block.
    """
    start = text.find("{")
    if start == -1:
        raise MissingJSONError("Model reply contains no JSON object")

    end = _find_object_end(text, start)
    if end is None:
        # Truncated or unbalanced, but still closed by the final brace: hand it
        # to the JSON parser so the failure is reported as malformed JSON.
        if text.rstrip().endswith("}"):
            return text[start:].rstrip()
        raise MissingJSONError("Model reply contains an unterminated JSON object")

    trailing = text[end + 1 :].strip()
    if trailing:
        raise TrailingContentError(
            f"Model reply has unexpected content after the JSON object: {trailing[:80]!r}"
        )

    if start > 0:
        logger.debug("Ignoring %d characters of prose before the JSON object", start)
    return text[start : end + 1]


def parse_model_reply(raw: str) -> dict[str, Any]:
    """Strip fences, extract the JSON object and parse it.

    Args:
        raw: Raw text returned by the completion API.

    Returns:
        The parsed object.

    Raises:
        MissingJSONError: If no JSON object is present.
        TrailingContentError: If prose follows the object.
        MalformedJSONError: If the object is not valid JSON.
    """
    block = extract_json_object(strip_fences(raw))
    try:
        parsed = json.loads(block)
    except json.JSONDecodeError as exc:
        logger.error("Model reply is not valid JSON: %s", block[:300])
        raise MalformedJSONError(f"Model reply is not valid JSON: {exc}") from exc
    return parsed
