"""Pull the {feedback, code} envelope out of a free-form provider response."""

import json
import logging
import re
from typing import Any, Iterable, Optional

from blocksmith.components.types import ParsedOutput
from blocksmith.normalizer import extract_code
from blocksmith.scanner import balanced_objects

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)


def normalise_feedback(items: Iterable[Any], fallback: str = "") -> list[str]:
    """Trim, drop blanks and dedupe case-insensitively, keeping first spellings in order."""
    seen = set()
    notes = []
    for item in items:
        text = "" if item is None else str(item).strip()
        if not text:
            continue
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)
        notes.append(text)
    if not notes and fallback:
        notes.append(fallback)
    return notes


def _candidates(text: str) -> list[str]:
    """Envelope candidates in priority order: whole text, fenced block, balanced objects."""
    candidates = [text]
    match = _JSON_FENCE_RE.search(text)
    if match and match.group(1):
        candidates.append(match.group(1).strip())
    candidates.extend(balanced_objects(text))
    return candidates


def find_envelope(raw: Any) -> Optional[dict]:
    """Return the first parsed JSON object that owns a ``code`` key, if any."""
    text = str(raw or "").strip()
    if not text:
        return None

    seen = set()
    for candidate in _candidates(text):
        source = candidate.strip()
        if not source or source in seen:
            continue
        seen.add(source)
        try:
            parsed = json.loads(source)
        except ValueError:
            continue
        if isinstance(parsed, dict) and "code" in parsed:
            return parsed
    return None


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # Lists join with commas, matching how the editor stringifies arrays.
    if isinstance(value, list):
        return ",".join(_stringify(item) for item in value)
    return json.dumps(value)


def extract(raw: Any) -> ParsedOutput:
    """Parse a raw provider response into feedback notes and normalised code."""
    envelope = find_envelope(raw)
    if envelope is None:
        logger.debug("No structured envelope found; treating response as raw code")
        return ParsedOutput(feedback=[], code=extract_code(raw))

    feedback = envelope.get("feedback")
    if feedback is None:
        feedback = []
    elif not isinstance(feedback, list):
        feedback = [feedback]
    return ParsedOutput(
        feedback=normalise_feedback(feedback),
        code=extract_code(_stringify(envelope["code"])),
    )
