import json
import re
from typing import Any, Dict, List, Optional, Union

from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

JSONValue = Union[Dict[str, Any], List[Any]]

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```)."""
    return _FENCE_PATTERN.sub("", text.strip()).strip()


def parse_json_safely(text: Optional[str]) -> Optional[JSONValue]:
    """Parse JSON out of completion output, tolerating common formatting noise.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Prose before or after the JSON value
    - Concatenated JSON objects (e.g., {...}\\n{...})

    Args:
        text: Raw completion text

    Returns:
        Parsed object or array, or None if nothing parseable was found
    """
    if not text:
        return None

    cleaned_text = strip_code_fences(text)

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

        if "Extra data" in str(e):
            merged = _parse_concatenated_json(cleaned_text)
            if merged is not None:
                LOGGER.info("Parsed concatenated JSON into a single result")
                return merged

    embedded = _extract_embedded_json(cleaned_text)
    if embedded is not None:
        return embedded

    LOGGER.error("Failed to parse JSON from completion output", extra={"preview": cleaned_text[:200]})
    return None


def _extract_embedded_json(text: str) -> Optional[JSONValue]:
    """Find the widest ``[...]`` or ``{...}`` span that parses, outermost opener first."""
    spans = []
    for opener, closer in (("[", "]"), ("{", "}")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            spans.append((start, end))

    for start, end in sorted(spans):
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            LOGGER.debug(f"No parseable {text[start]}{text[end]} span in completion output")
    return None


def _parse_concatenated_json(text: str) -> Optional[JSONValue]:
    """Decode back-to-back JSON values and merge them.

    Args:
        text: Text containing several JSON values one after another

    Returns:
        Merged result or None if nothing decoded
    """
    decoder = json.JSONDecoder()
    results = []
    idx = 0
    length = len(text)

    while idx < length:
        while idx < length and text[idx] in " \t\n\r,":
            idx += 1
        if idx >= length:
            break
        try:
            obj, idx = decoder.raw_decode(text, idx)
            results.append(obj)
        except json.JSONDecodeError:
            break

    if not results:
        return None
    return _merge_json_objects(results)


def _merge_json_objects(objects: List[Any]) -> JSONValue:
    if len(objects) == 1:
        return objects[0]

    if all(isinstance(obj, dict) for obj in objects):
        merged: Dict[str, Any] = {}
        for obj in objects:
            for key, value in obj.items():
                existing = merged.get(key)
                if isinstance(existing, list) and isinstance(value, list):
                    merged[key] = existing + value
                else:
                    merged[key] = value
        return merged

    if all(isinstance(obj, list) for obj in objects):
        return [item for obj in objects for item in obj]

    return objects
