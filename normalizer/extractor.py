"""Locate a schema inside an agent envelope of unknown shape.

The agent platform normalizes replies through several layers, so the object
we want can sit at:

1. ``response.result`` directly
2. ``response.result`` wrapped in another ``{"result": ...}``
3. a JSON string inside a ``text``/``message`` field
4. ``response`` itself when the platform flattened it
5. ``raw_response`` as a string containing JSON

A schema is recognised by a marker key that only the target object carries
(``pipeline_status`` for the manager agent, ``post_status`` for the publisher).
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

MAX_DEPTH = 6

# Probe order matters: several wrappers can coexist on one object.
WRAPPER_KEYS = (
    "result",
    "response",
    "data",
    "output",
    "content",
    "message",
    "text",
    "raw_response",
    "raw",
)


def is_match(candidate: Any, marker_key: str) -> bool:
    """True if ``candidate`` is a mapping carrying ``marker_key``."""
    return isinstance(candidate, Mapping) and marker_key in candidate


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def extract(value: Any, marker_key: str, depth: int = 0) -> dict | None:
    """Depth-bounded search for the first mapping carrying ``marker_key``.

    Strings are parsed as JSON and searched; lists and scalars never match.
    Returns None when nothing is found.
    """
    if depth > MAX_DEPTH or value is None:
        return None

    if isinstance(value, str):
        parsed = _try_parse(value)
        if parsed is None:
            return None
        return extract(parsed, marker_key, depth + 1)

    if not isinstance(value, Mapping):
        return None

    if marker_key in value:
        return value

    for key in WRAPPER_KEYS:
        inner = value.get(key)
        if inner is not None:
            found = extract(inner, marker_key, depth + 1)
            if found is not None:
                return found
    return None


def _get(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, Mapping) else None


def resolve_agent_payload(envelope: Any, marker_key: str) -> dict | None:
    """Walk the known envelope locations in order and return the first match."""
    if not envelope:
        return None

    response = _get(envelope, "response")
    direct = _get(response, "result")

    if is_match(direct, marker_key):
        return direct

    found = extract(direct, marker_key)
    if found is not None:
        return found

    found = extract(response, marker_key)
    if found is not None:
        return found

    raw = _get(envelope, "raw_response")
    if raw:
        found = extract(raw, marker_key)
        if found is not None:
            return found

    found = extract(envelope, marker_key)
    if found is None:
        logger.debug("No '%s' payload found in agent envelope", marker_key)
    return found


def text_excerpt(envelope: Any) -> str:
    """First plain-text reply in the envelope, used when no schema matched."""
    response = _get(envelope, "response")
    for candidate in (
        _get(response, "message"),
        _get(response, "result"),
        _get(_get(response, "result"), "text"),
    ):
        if isinstance(candidate, str):
            return candidate
    return ""


def confirmation_text(envelope: Any) -> str:
    """First non-empty message the publisher agent sent back."""
    response = _get(envelope, "response")
    result = _get(response, "result")
    for candidate in (
        _get(response, "message"),
        _get(result, "text"),
        _get(result, "message"),
    ):
        if candidate:
            return candidate if isinstance(candidate, str) else ""
    return ""
