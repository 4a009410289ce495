from blocksmith.components.types import ConversionDialog, GenerationRequest, TargetProfile
from blocksmith.prompts import (
    MANDATE,
    TRUNCATION_MARKER,
    bound_current_code,
    empty_retry_suffix,
    system_prompt_for,
    user_prompt_for,
    validation_retry_suffix,
    with_suffix,
)


def test_system_prompt_names_target_and_response_format():
    prompt = system_prompt_for(TargetProfile.ARCADE)
    assert "MakeCode assistant for Arcade" in prompt
    assert '{"feedback":["short note"]' in prompt
    assert "TARGET SCOPE: Use ONLY Arcade APIs" in prompt
    assert "MICRO:BIT BUILT-IN ICON/ENUM RULES" not in prompt


def test_microbit_system_prompt_includes_enum_guidance():
    prompt = system_prompt_for(TargetProfile.MICROBIT)
    assert "IconNames.Heart" in prompt
    assert "ArrowNames.NorthEast" in prompt
    assert "Gesture.Shake" in prompt


def test_unknown_target_system_prompt_defaults_to_microbit():
    assert system_prompt_for("unknown") == system_prompt_for(TargetProfile.MICROBIT)


def test_user_prompt_contains_all_blocks_in_order():
    request = GenerationRequest(
        instruction="  make a heart  ",
        existing_code="basic.showNumber(1)",
        page_errors=["  Error   one ", "", "Error two"],
        dialog_note=ConversionDialog(title="Convert", description="Cannot   convert"),
    )
    prompt = user_prompt_for(request)
    assert prompt.startswith("USER_REQUEST:\nmake a heart")
    assert "<<<PAGE_ERRORS>>>\n- Error one\n- Error two\n<<<END_PAGE_ERRORS>>>" in prompt
    assert "<<<CONVERSION_DIALOG>>>\nTitle: Convert\nMessage: Cannot convert\n<<<END_CONVERSION_DIALOG>>>" in prompt
    assert prompt.endswith("<<<CURRENT_CODE>>>\nbasic.showNumber(1)\n<<<END_CURRENT_CODE>>>")
    assert prompt.index("PAGE_ERRORS") < prompt.index("CONVERSION_DIALOG") < prompt.index("CURRENT_CODE")


def test_user_prompt_omits_empty_sections():
    prompt = user_prompt_for(GenerationRequest(instruction="blink", existing_code="   ", dialog_note=ConversionDialog()))
    assert prompt == "USER_REQUEST:\nblink"


def test_bound_current_code_keeps_short_code():
    bounded = bound_current_code("let x = 0", max_chars=100)
    assert bounded.text == "let x = 0"
    assert not bounded.truncated


def test_bound_current_code_truncates_middle():
    code = "a" * 300 + "b" * 300
    bounded = bound_current_code(code, max_chars=200)
    assert bounded.truncated
    assert TRUNCATION_MARKER in bounded.text
    assert bounded.text.startswith("a")
    assert bounded.text.endswith("b")
    assert bounded.omitted_chars == len(code) - (len(bounded.text) - len(TRUNCATION_MARKER))


def test_user_prompt_reports_truncation():
    request = GenerationRequest(instruction="fix it", existing_code="x" * 500)
    prompt = user_prompt_for(request, max_current_code_chars=100)
    assert "<<<CURRENT_CODE_NOTE>>>" in prompt
    assert "Omitted approx" in prompt


def test_corrective_suffixes():
    assert "empty code" in empty_retry_suffix()
    assert empty_retry_suffix().endswith(MANDATE)

    first = validation_retry_suffix(["arrow functions", "classes"], 0)
    assert first.startswith("Previous code used: arrow functions, classes.")
    later = validation_retry_suffix(["null"], 1)
    assert later.startswith("STRICT MODE: Output a smaller program")
    assert "Absolutely no: null." in later


def test_with_suffix():
    assert with_suffix("base") == "base"
    assert with_suffix("base", "more") == "base\nmore"


def test_system_prompt_lists_target_namespaces():
    assert "ALLOWED NAMESPACES: pins, input, loops, music." in system_prompt_for(TargetProfile.MAKER)
    assert "ALLOWED NAMESPACES: controller, game, scene" in system_prompt_for(TargetProfile.ARCADE)
