"""Quote- and comment-aware character scanning.

Code and JSON are only classified here, never parsed, so every scan is a
single left-to-right pass over explicit state: the active quote character,
whether the previous character was an escaping backslash, and whether we are
inside a line or block comment.
"""

from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class ScanState:
    """Scanner state at the current character."""

    quote: Optional[str] = None
    escaped: bool = False
    comment: Optional[str] = None


def scan(text: str, quotes: str = '"', comments: bool = False) -> Iterator[tuple[int, str, bool]]:
    """Yield ``(index, char, masked)`` for every character of ``text``.

    ``masked`` is True for characters inside a string literal (delimiters
    excluded) or, when ``comments`` is set, inside a comment (markers included).
    """
    state = ScanState()
    length = len(text)
    i = 0
    while i < length:
        char = text[i]
        nxt = text[i + 1] if i + 1 < length else ""

        if state.comment == "line":
            if char == "\n":
                state.comment = None
                yield i, char, False
            else:
                yield i, char, True
            i += 1
            continue
        if state.comment == "block":
            yield i, char, True
            if char == "*" and nxt == "/":
                yield i + 1, nxt, True
                state.comment = None
                i += 1
            i += 1
            continue
        if state.quote is not None:
            if state.escaped:
                state.escaped = False
                yield i, char, True
            elif char == "\\":
                state.escaped = True
                yield i, char, True
            elif char == state.quote:
                state.quote = None
                yield i, char, False
            else:
                yield i, char, True
            i += 1
            continue

        if comments and char == "/" and nxt in ("/", "*"):
            state.comment = "line" if nxt == "/" else "block"
            yield i, char, True
            yield i + 1, nxt, True
            i += 2
            continue
        if char in quotes:
            state.quote = char
        yield i, char, False
        i += 1


def balanced_objects(text: str) -> list[str]:
    """Return every balanced top-level ``{...}`` substring, ignoring braces inside JSON strings."""
    matches = []
    depth = 0
    start = -1
    for i, char, masked in scan(text, quotes='"'):
        if masked:
            continue
        if char == "{":
            if depth == 0:
                start = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start != -1:
                matches.append(text[start : i + 1])
                start = -1
    return matches


def blank_masked(text: str, quotes: str = "\"'`", comments: bool = False) -> str:
    """Replace masked characters with spaces, keeping length and line breaks."""
    chars = list(text)
    for i, char, masked in scan(text, quotes=quotes, comments=comments):
        if masked and char not in "\r\n":
            chars[i] = " "
    return "".join(chars)


def redact_strings(code: str) -> str:
    """Blank out the contents of every quoted or backtick string."""
    return blank_masked(code)


def strip_non_code(code: str) -> str:
    """Blank out string contents and comments."""
    return blank_masked(code, comments=True)
