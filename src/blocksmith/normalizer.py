"""Canonicalise provider text into clean source text."""

import re

_INVISIBLE_RE = re.compile("[\u200b-\u200d\ufeff]")
_LEADING_FENCE_RE = re.compile(r"^```.*?\n", re.DOTALL)
_TRAILING_FENCE_RE = re.compile(r"```\s*$")
_FENCED_BLOCK_RE = re.compile(r"```[^\n`]*?\r?\n(.*?)```", re.IGNORECASE | re.DOTALL)

_ESCAPES = (("\\r\\n", "\n"), ("\\n", "\n"), ("\\t", "\t"))
_QUOTES = str.maketrans({"\u2018": "'", "\u2019": "'", "\u201c": '"', "\u201d": '"', "\u00a0": " "})


def _strip_edges(text: str) -> str:
    while True:
        stripped = text.strip().strip("`")
        if stripped == text:
            return text
        text = stripped


def normalize(text) -> str:
    """Return clean source text. Never raises; normalize(normalize(x)) == normalize(x)."""
    if not text:
        return ""
    text = _INVISIBLE_RE.sub("", str(text))
    if text.startswith("```"):
        text = _TRAILING_FENCE_RE.sub("", _LEADING_FENCE_RE.sub("", text, count=1), count=1)
    for escaped, real in _ESCAPES:
        text = text.replace(escaped, real)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.translate(_QUOTES)
    return _strip_edges(text)


def extract_code(raw) -> str:
    """Normalise the first fenced code block in ``raw``, or all of ``raw`` when there is none."""
    if not raw:
        return ""
    raw = str(raw)
    match = _FENCED_BLOCK_RE.search(raw)
    return normalize(match.group(1) if match else raw)
