"""Extraction of the JSON object from AI service text output.

Models frequently wrap the payload in markdown code fences or add a
sentence before/after it; only the outermost ``{...}`` is kept.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any, Dict

from mealsnap.domain.shared.errors import AnalysisParseError

if TYPE_CHECKING:
    from mealsnap.domain.analysis.models import RawAnalysisResponse

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1)
    return text.strip()


def extract_json_object(text: Any) -> Dict[str, Any]:
    """Parse the outermost JSON object out of ``text``.

    Raises:
        AnalysisParseError: NOT_TEXT, NO_JSON_OBJECT, INVALID_JSON or
            ROOT_NOT_OBJECT
    """
    if not isinstance(text, str):
        raise AnalysisParseError("NOT_TEXT")

    body = strip_code_fences(text)
    first = body.find("{")
    last = body.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise AnalysisParseError("NO_JSON_OBJECT")

    snippet = body[first : last + 1]
    try:
        obj = json.loads(snippet)
    except ValueError as exc:
        raise AnalysisParseError(f"INVALID_JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise AnalysisParseError("ROOT_NOT_OBJECT")
    return obj


def parse_model_output(text: Any) -> "RawAnalysisResponse":
    """Wrap the model's text answer as an untrusted response.

    Raises:
        AnalysisParseError: No JSON object could be recovered
    """
    from mealsnap.domain.analysis.models import RawAnalysisResponse

    return RawAnalysisResponse(payload=extract_json_object(text))


__all__ = ["strip_code_fences", "extract_json_object", "parse_model_output"]
