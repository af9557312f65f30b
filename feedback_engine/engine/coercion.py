"""
List and text coercion helpers.

Feedback fields that should be a list of strings arrive in several shapes
depending on which analyser version wrote them: a real list, a JSON-encoded
list, a single sentence, or nothing at all. Everything here is pure and never
raises on malformed input.
"""

import copy
import json
from typing import Any, Dict, List, Literal, Mapping, NamedTuple, Optional

from domain.models import ListProvenance


# Summary tokens that justify a synthetic entry when a list is empty.
STRENGTH_TOKENS = ("strength",)
IMPROVEMENT_TOKENS = ("improv", "develop")

SYNTHETIC_STRENGTH = "Session demonstrates effective coaching practices based on AI analysis"
SYNTHETIC_IMPROVEMENT = "Continue developing coaching skills based on AI recommendations"

ListKind = Literal["strengths", "improvements"]

_FALLBACKS = {
    "strengths": (STRENGTH_TOKENS, SYNTHETIC_STRENGTH),
    "improvements": (IMPROVEMENT_TOKENS, SYNTHETIC_IMPROVEMENT),
}


class CoercedList(NamedTuple):
    items: List[str]
    provenance: ListProvenance


def _stringify_items(items: List[Any]) -> List[str]:
    return [item if isinstance(item, str) else str(item) for item in items if item is not None]


def coerce_string_list(value: Any) -> List[str]:
    """Normalise *value* into a list of strings.

    - list/tuple            -> items as strings (None items dropped)
    - JSON string of a list -> decoded items
    - other JSON string     -> [value]
    - plain string          -> [value]
    - None or ""            -> []
    - anything else         -> []
    """
    if value is None:
        return []

    if isinstance(value, (list, tuple)):
        return _stringify_items(list(value))

    if isinstance(value, str):
        if value == "":
            return []
        try:
            decoded = json.loads(value)
        except (ValueError, RecursionError):
            return [value]
        if isinstance(decoded, list):
            return _stringify_items(decoded)
        return [value]

    return []


def coerce_with_summary_fallback(
    value: Any, summary: Any, kind: ListKind
) -> CoercedList:
    """Coerce *value*; when that yields nothing, consult the summary text.

    The fallback is a substring heuristic: a summary mentioning strengths (or
    improvement/development) produces one generic, synthetic entry tagged
    ``ListProvenance.SUMMARY_HEURISTIC``.
    """
    items = coerce_string_list(value)
    if items:
        return CoercedList(items, ListProvenance.RECORD)

    if isinstance(summary, str) and summary:
        tokens, synthetic = _FALLBACKS[kind]
        lowered = summary.lower()
        if any(token in lowered for token in tokens):
            return CoercedList([synthetic], ListProvenance.SUMMARY_HEURISTIC)

    return CoercedList([], ListProvenance.NONE)


def decode_json_object(value: Any) -> Optional[Dict[str, Any]]:
    """Return *value* as a fresh dict, decoding JSON strings on the way.

    Returns None when the value is absent, undecodable or not an object.
    """
    if isinstance(value, (str, bytes, bytearray)):
        try:
            value = json.loads(value)
        except (ValueError, UnicodeDecodeError, RecursionError):
            return None
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    return None


def coerce_text(value: Any) -> str:
    """Narrative fields: strings pass through, None becomes "", others are str()-ed."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)
