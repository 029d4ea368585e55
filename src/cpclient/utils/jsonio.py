"""Helpers for decoding JSON payloads handed over by the UI layer."""

from __future__ import annotations

import json
from typing import Any

from ..errors import MalformedOptionsError, OptionsNotAnObjectError


def parse_json_object(text: str) -> dict[str, Any]:
    """Decode *text* and return it when it holds a JSON object.

    Raises :class:`MalformedOptionsError` for text that is not strict JSON,
    including the ``NaN`` and ``Infinity`` literals, and
    :class:`OptionsNotAnObjectError` for arrays, strings, numbers and ``null``.
    """

    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, TypeError) as exc:
        raise MalformedOptionsError(f"Invalid JSON data: {text!r}") from exc
    if not isinstance(value, dict):
        raise OptionsNotAnObjectError(
            f"Expected a JSON object, got {type(value).__name__}"
        )
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")
