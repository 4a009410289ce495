import pytest

from blocksmith.normalizer import extract_code, normalize


def test_normalize_strips_surrounding_fence():
    """Test that a leading fence line and trailing fence are removed"""
    text = "```typescript\nbasic.showString(\"Hi\")\n```"
    assert normalize(text) == 'basic.showString("Hi")'


def test_normalize_unescapes_literal_sequences():
    """Test that double-escaped newlines and tabs become real whitespace"""
    assert normalize("let x = 0\\nlet y = 1\\r\\n\\tbasic.pause(1)") == "let x = 0\nlet y = 1\n\tbasic.pause(1)"


def test_normalize_collapses_line_endings():
    assert normalize("a\r\nb\rc") == "a\nb\nc"


def test_normalize_replaces_curly_quotes_and_invisible_characters():
    text = "\ufeffbasic.showString(\u201cHi\u201d)\u200b + \u2018x\u2019\u00a0"
    assert normalize(text) == "basic.showString(\"Hi\") + 'x'"


def test_normalize_strips_stray_backticks():
    assert normalize("`let x = 0`") == "let x = 0"
    assert normalize("  ` `let x = 0") == "let x = 0"


@pytest.mark.parametrize("value", [None, "", 0])
def test_normalize_empty_values(value):
    assert normalize(value) == ""


@pytest.mark.parametrize(
    "text",
    [
        "```\n```\nlet x = 0\n```\n```",
        "\\\u200bn let x",
        "\\\\n",
        "  ` `x` ",
        "```js\nlet a = `img`\n```  \n",
        "“\\r\\n”\r\n  ",
        "``````",
    ],
)
def test_normalize_is_idempotent(text):
    """Test normalize(normalize(x)) == normalize(x) on awkward inputs"""
    once = normalize(text)
    assert normalize(once) == once


def test_extract_code_prefers_first_fenced_block():
    raw = "Here you go:\n```ts\nlet x = 0\n```\nand another\n```ts\nlet y = 1\n```"
    assert extract_code(raw) == "let x = 0"


def test_extract_code_without_fence_normalizes_whole_text():
    assert extract_code("  let x = 0\r\n") == "let x = 0"


def test_extract_code_finds_fence_with_crlf_line_endings():
    raw = "Sure:\r\n```ts\r\nlet x = 0\r\nbasic.pause(1)\r\n```\r\nDone."
    assert extract_code(raw) == "let x = 0\nbasic.pause(1)"
