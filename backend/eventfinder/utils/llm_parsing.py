"""Helpers for reading structured output returned by completion calls.

Completion services are asked for strict JSON but do not always comply:
the payload may be wrapped in a fenced block, preceded by prose, or cut off.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict

__all__ = ["extract_structured_json"]

_FENCED = re.compile(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", flags=re.DOTALL | re.IGNORECASE)


def _wrap(parsed: Any) -> Dict[str, Any]:
    if isinstance(parsed, list):
        return {"events": parsed}
    if isinstance(parsed, dict):
        return parsed
    raise ValueError("JSON payload is neither an object nor an array")


def extract_structured_json(response_text: str) -> Dict[str, Any]:
    """Robustly extract JSON from a completion response.

    Parameters
    ----------
    response_text
        Raw message content.

    Returns
    -------
    dict[str, Any]
        The parsed object. A top-level array is wrapped as
        ``{"events": <list>}`` so callers can always read the ``"events"`` key.

    Raises
    ------
    ValueError
        If no valid JSON snippet can be located.
    """

    cleaned = response_text.strip()

    try:
        return _wrap(json.loads(cleaned))
    except (json.JSONDecodeError, ValueError):
        pass

    fenced = _FENCED.search(cleaned)
    if fenced:
        snippet = fenced.group(1).strip()
        try:
            return _wrap(json.loads(snippet))
        except (json.JSONDecodeError, ValueError):
            cleaned = snippet

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        raise ValueError("Could not locate JSON in completion response")

    candidate = cleaned[min(starts):]
    for end in range(len(candidate), 0, -1):
        try:
            return _wrap(json.loads(candidate[:end].strip()))
        except (json.JSONDecodeError, ValueError):
            continue

    raise ValueError("Could not locate JSON in completion response")
