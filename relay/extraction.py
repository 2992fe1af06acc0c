"""
Extraction - Relay Module
Normalizes raw Gemini responses into a single answer string.

The model is asked for `{"analysis": "..."}` but may wrap it in a markdown
fence, prepend prose or drop the key entirely. Every step below degrades to
the best text available instead of raising.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Opening fence with optional language tag, or a bare closing fence.
_CODE_FENCE_RE = re.compile(r"```(?:[A-Za-z0-9_+-]+[ \t]*\r?\n)?")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _first_text_fragment(data: Any) -> str:
    """Read candidates[0].content.parts[0].text, defaulting to empty."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", text).strip()


def _analysis_from_text(cleaned: str) -> str:
    match = _JSON_OBJECT_RE.search(cleaned)
    if not match:
        return cleaned

    try:
        parsed = json.loads(match.group(0))
    except (ValueError, RecursionError) as exc:
        logger.warning("Model output contained malformed JSON: %s", exc)
        return cleaned

    if not isinstance(parsed, dict):
        return cleaned

    analysis = parsed.get("analysis")
    if not analysis:
        return cleaned
    if isinstance(analysis, str):
        return analysis
    try:
        return json.dumps(analysis, ensure_ascii=False)
    except RecursionError:
        return cleaned


def extract_answer(raw_body: str) -> str:
    """
    Extract the analysis text from a raw generateContent response body.

    Fallback order:
    - body is not a JSON object: return the raw body unchanged
    - fragment holds a JSON object with "analysis": return that value
    - otherwise: return the fence-stripped, trimmed fragment
    """
    try:
        data = json.loads(raw_body)
    except (ValueError, RecursionError) as exc:
        logger.error("Error parsing Gemini response: %s", exc)
        return raw_body

    if not isinstance(data, dict):
        logger.error("Error parsing Gemini response: body is not an object")
        return raw_body

    cleaned = strip_code_fences(_first_text_fragment(data))
    return _analysis_from_text(cleaned)
