"""Prompt text sent to providers."""

from dataclasses import dataclass

from blocksmith.components.types import ConversionDialog, GenerationRequest
from blocksmith.targets import get_target

TRUNCATION_MARKER = "\n// ... CURRENT_CODE_TRUNCATED ...\n"
HEAD_SHARE = 0.65

MANDATE = "MANDATE: Output only compact JSON with keys feedback (array) and code (string). No prose."
EMPTY_CODE_SUFFIX = "Your last message had empty code. Return valid JSON only with feedback[] and code string."


@dataclass
class BoundedCode:
    """Existing code cut down to fit the prompt."""

    text: str
    truncated: bool = False
    omitted_chars: int = 0


def bound_current_code(code: str, max_chars: int = 0, marker: str = TRUNCATION_MARKER) -> BoundedCode:
    """Keep the head and tail of ``code`` around ``marker`` when it exceeds ``max_chars``."""
    source = code or ""
    if not source.strip():
        return BoundedCode(text="")
    if not max_chars or len(source) <= max_chars:
        return BoundedCode(text=source)

    budget = max(0, max_chars - len(marker))
    head_budget = int(budget * HEAD_SHARE)
    tail_budget = max(0, budget - head_budget)
    head = source[:head_budget].rstrip()
    tail = source[len(source) - tail_budget :].lstrip() if tail_budget else ""
    omitted = max(0, len(source) - len(head) - len(tail))
    return BoundedCode(text=head + marker + tail, truncated=True, omitted_chars=omitted)


def system_prompt_for(target) -> str:
    """Base system prompt for ``target``, without any corrective suffix."""
    config = get_target(target)
    extras = ["", *config.prompt_extras] if config.prompt_extras else []
    lines = [
        f"You are a Microsoft MakeCode assistant for {config.name}.",
        f"Your ONLY job is to produce MakeCode Static TypeScript that the MakeCode editor can decompile into visual BLOCKS for {config.name}. "
        "Every line you output must be representable as a block. If a language feature has no block equivalent, do not use it.",
        "",
        "ALLOWED NAMESPACES: " + ", ".join(config.namespaces) + ". Prefer event handlers and forever/update loops.",
        "",
        "AVAILABLE APIs:",
        config.apis,
        *extras,
        "",
        "BLOCK-COMPATIBLE PATTERNS (use these):",
        "- Event handlers: input.onButtonPressed(Button.A, function () { })",
        "- Forever loops: basic.forever(function () { })",
        "- Variables with let: let x = 0",
        "- Control flow: if/else, while, for (let i = 0; i < n; i++), for (let v of list)",
        "- Random choice from a list: options._pickRandom()",
        "- Named functions: function doSomething() { }",
        "",
        "BLOCK-SAFE REQUIREMENTS (hard):",
        "- No grey JavaScript blocks: every line must map to editable blocks",
        "- Every variable declaration must have an initializer (let x = ...)",
        "- For loops must be exactly: for (let i = 0; i < limit; i++) or for (let i = 0; i <= limit; i++)",
        "- Event registrations and function declarations must be top-level",
        "- Do not use optional/default parameters in user-defined functions",
        "- Do not return a value inside callbacks/event handlers",
        "- Do not pass more arguments than a block signature supports",
        "- In statements, assignment operators are limited to =, +=, -=",
        "",
        "AVOID (these won't decompile to blocks):",
        "- Arrow functions (=>), ternary (? :), destructuring, spread/rest (...)",
        "- const, var (use let for all variables)",
        '- Template literals for strings (use "string" + variable, not `${}`). Exception: backtick image literals like '
        "img`...` and showLeds(`...`) ARE allowed.",
        "- Optional chaining (?.), nullish coalescing (??)",
        "- for...in loops",
        "- import/export, async/await, yield, eval",
        "- Classes, interfaces, type aliases, enums, generics in user code",
        "- Higher-order array methods (map/filter/reduce/forEach)",
        "- randint(...) (use list._pickRandom() for random selections)",
        "- null, undefined, casts (as), bitwise operators (| & ^ << >> >>>), bitwise compound assignments",
        "- setTimeout, setInterval, console, Promise",
        "- Comments, markdown fences, prose after code",
        "",
        "RESPONSE FORMAT:",
        "- Return ONLY a JSON object with this exact shape:",
        '- {"feedback":["short note"],"code":"MakeCode Static TypeScript with \\\\n escapes"}',
        "- feedback must be an array of one or more short strings",
        "- code must be MakeCode Static TypeScript encoded as a JSON string (use escaped \\n for new lines, no markdown fences)",
        "- Straight quotes, ASCII only, function () { } handlers",
        "- If PAGE_ERRORS are provided, treat them as failing diagnostics and prioritise resolving all of them",
        "- If CONVERSION_DIALOG is provided, ensure the output converts from JavaScript back to Blocks in MakeCode",
        "",
        f"TARGET SCOPE: Use ONLY {config.name} APIs listed above. Never mix APIs from other targets.",
        "",
        "EXAMPLE:",
        config.example,
        "",
        f"If unsure about an API, return a minimal working program for {config.name}.",
    ]
    return "\n".join(lines)


def _dialog_block(dialog: ConversionDialog) -> str:
    lines = []
    if dialog.title:
        lines.append("Title: " + dialog.title)
    if dialog.description:
        lines.append("Message: " + dialog.description)
    return "<<<CONVERSION_DIALOG>>>\n" + "\n".join(lines) + "\n<<<END_CONVERSION_DIALOG>>>"


def user_prompt_for(request: GenerationRequest, max_current_code_chars: int = 0) -> str:
    """User message for ``request``; identical on every attempt of one generation."""
    blocks = ["USER_REQUEST:\n" + request.instruction]

    if request.page_errors:
        blocks.append("<<<PAGE_ERRORS>>>\n- " + "\n- ".join(request.page_errors) + "\n<<<END_PAGE_ERRORS>>>")

    if request.dialog_note and not request.dialog_note.is_empty():
        blocks.append(_dialog_block(request.dialog_note))

    bounded = bound_current_code(request.existing_code, max_current_code_chars)
    if bounded.text:
        if bounded.truncated:
            blocks.append(
                "<<<CURRENT_CODE_NOTE>>>\n"
                f"Current code was truncated for prompt size. Omitted approx {bounded.omitted_chars} chars from the middle.\n"
                "<<<END_CURRENT_CODE_NOTE>>>"
            )
        blocks.append("<<<CURRENT_CODE>>>\n" + bounded.text + "\n<<<END_CURRENT_CODE>>>")

    return "\n\n".join(blocks)


def empty_retry_suffix() -> str:
    return EMPTY_CODE_SUFFIX + "\n" + MANDATE


def validation_retry_suffix(violations: list[str], retry_index: int) -> str:
    """Corrective suffix for the ``retry_index``-th validation retry (0-based)."""
    listed = ", ".join(violations)
    if retry_index == 0:
        text = f"Previous code used: {listed}. Remove ALL forbidden constructs and return fully Blocks-compatible code."
    else:
        text = f"STRICT MODE: Output a smaller program that fully decompiles to Blocks. Absolutely no: {listed}."
    return text + "\n" + MANDATE


def with_suffix(system_prompt: str, suffix: str = "") -> str:
    return system_prompt + ("\n" + suffix if suffix else "")
