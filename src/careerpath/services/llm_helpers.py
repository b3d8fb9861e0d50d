"""Helpers for interpreting free-text model responses."""

import json
from typing import Any

from careerpath.services.exceptions import ParseFailure


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Locate and parse the first JSON object embedded in free text.

    Models often wrap the requested object in commentary or code fences.
    Decoding starts at the first ``{`` and stops at the end of that object,
    so anything before or after it is ignored.

    Args:
        text: Raw model response

    Returns:
        The parsed object

    Raises:
        ParseFailure: If there is no ``{``, the object does not decode, or
            the decoded value is not a JSON object

    Example:
        >>> extract_json_object('Sure! {"moodScore": 7} Hope that helps.')
        {'moodScore': 7}
    """
    if not isinstance(text, str):
        raise ParseFailure("Response is not text")

    start = text.find("{")
    if start == -1:
        raise ParseFailure("No JSON object found in response")

    try:
        value, _ = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Malformed JSON object at position {e.pos}: {e.msg}") from e
    except (ValueError, RecursionError) as e:
        # Nesting too deep for the decoder, or an integer past the digit limit
        raise ParseFailure(f"Undecodable JSON object: {type(e).__name__}") from e

    if not isinstance(value, dict):
        raise ParseFailure(f"Expected JSON object, got {type(value).__name__}")

    return value
