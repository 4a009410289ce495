from blocksmith.components.types import ParsedOutput
from blocksmith.extractor import extract, find_envelope, normalise_feedback


def test_extract_envelope_wrapped_in_prose():
    raw = 'prose {"feedback":["keep it simple"],"code":"let x = 0"} more prose'
    result = extract(raw)
    assert isinstance(result, ParsedOutput)
    assert result.feedback == ["keep it simple"]
    assert result.code == "let x = 0"


def test_extract_whole_text_json():
    raw = '{"feedback": ["Shows a heart."], "code": "basic.showIcon(IconNames.Heart)"}'
    result = extract(raw)
    assert result.feedback == ["Shows a heart."]
    assert result.code == "basic.showIcon(IconNames.Heart)"


def test_extract_from_json_fence():
    raw = 'Sure!\n```json\n{"feedback": "one note", "code": "let a = 1\\nlet b = 2"}\n```\nEnjoy.'
    result = extract(raw)
    assert result.feedback == ["one note"]
    assert result.code == "let a = 1\nlet b = 2"


def test_extract_skips_objects_without_code_key():
    raw = 'first {"note": "ignored"} then {"feedback": ["used"], "code": "let y = 2"}'
    result = extract(raw)
    assert result.feedback == ["used"]
    assert result.code == "let y = 2"


def test_extract_ignores_braces_inside_strings():
    raw = 'text {"feedback": ["use { and } carefully"], "code": "basic.forever(function () {\\n})"} tail }'
    result = extract(raw)
    assert result.feedback == ["use { and } carefully"]
    assert result.code == "basic.forever(function () {\n})"


def test_extract_honours_escaped_quotes_in_strings():
    raw = 'x {"feedback": [], "code": "basic.showString(\\"}{\\")"} y'
    result = extract(raw)
    assert result.code == 'basic.showString("}{")'


def test_extract_null_code_is_accepted_as_envelope():
    result = extract('{"feedback": ["nothing to do"], "code": null}')
    assert result.feedback == ["nothing to do"]
    assert result.code == ""


def test_extract_absent_feedback_becomes_empty_list():
    result = extract('{"code": "let x = 0"}')
    assert result.feedback == []
    assert result.code == "let x = 0"


def test_extract_arrays_are_not_envelopes_but_inner_objects_are():
    assert find_envelope('[{"code": "let x = 0"}]') == {"code": "let x = 0"}
    result = extract('[1, 2, 3]')
    assert result.feedback == []
    assert result.code == "[1, 2, 3]"


def test_extract_fallback_to_fenced_code_block():
    raw = "Here is the program:\n```typescript\nlet x = 0\n```\nHope it helps."
    result = extract(raw)
    assert result.feedback == []
    assert result.code == "let x = 0"


def test_extract_fallback_to_fenced_code_block_with_crlf():
    raw = "Here is your program:\r\n```typescript\r\nlet x = 0\r\n```\r\nEnjoy!"
    result = extract(raw)
    assert result.feedback == []
    assert result.code == "let x = 0"


def test_extract_fallback_to_whole_text():
    result = extract("  basic.showNumber(5)  ")
    assert result.feedback == []
    assert result.code == "basic.showNumber(5)"


def test_extract_empty_response():
    result = extract("")
    assert result.feedback == []
    assert result.code == ""


def test_extract_stringifies_non_string_code():
    result = extract('{"code": 42}')
    assert result.code == "42"


def test_extract_joins_list_code_with_commas():
    result = extract('{"code": ["let x = 0", "basic.pause(1)"]}')
    assert result.code == "let x = 0,basic.pause(1)"


def test_normalise_feedback_dedupes_case_insensitively():
    assert normalise_feedback(["Note.", "note.", "Note."]) == ["Note."]


def test_normalise_feedback_drops_blanks_and_uses_fallback():
    assert normalise_feedback(["  ", None, ""], "default") == ["default"]
    assert normalise_feedback([" a ", "b"], "default") == ["a", "b"]
