"""Classify whether code is guaranteed to decompile into editor blocks.

``validate`` is pure: it never raises and performs no I/O. Violations are
reported as short canonical tags, each at most once, in the order in which
the rules below are evaluated.
"""

import re
from typing import Optional

from blocksmith.components.types import TargetProfile, ValidationResult
from blocksmith.scanner import redact_strings, strip_non_code
from blocksmith.targets import MICROBIT_CALL_SIGNATURES, MICROBIT_ENUM_MEMBERS, get_target

# Checked on the raw text.
SYNTAX_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"=>"), "arrow functions"),
    (re.compile(r"\bclass\s+"), "classes"),
    (re.compile(r"\bnew\s+[A-Z_a-z]"), "new constructor"),
    (re.compile(r"\bPromise\b|\basync\b|\bawait\b"), "promises/async"),
    (re.compile(r"\bimport\s|\bexport\s"), "import/export"),
    (re.compile(r"\$\{[^}]+\}"), "template string interpolation"),
    (re.compile(r"\.\s*(?:map|forEach|filter|reduce|find|some|every)\s*\("), "higher-order array methods"),
    (re.compile(r"\bnamespace\b|\bmodule\b"), "namespaces/modules"),
    (re.compile(r"\benum\b|\binterface\b|\btype\s+[A-Z_a-z]"), "TS types/enums"),
    (re.compile(r"<\s*[A-Z_a-z0-9,\s]+>"), "generics syntax"),
    (re.compile(r"setTimeout\s*\(|setInterval\s*\("), "timers"),
    (re.compile(r"console\."), "console calls"),
    (re.compile(r"^\s*//", re.MULTILINE), "line comments"),
    (re.compile(r"/\*.*?\*/", re.DOTALL), "block comments"),
    (re.compile(r"\brandint\s*\("), "randint()"),
    (re.compile(r"\*=|/=|%=|\|=|&=|\^=|<<=|>>=|>>>="), "unsupported assignment operators"),
)

# Checked on the raw text; logical && and || are not bitwise.
BITWISE_RULES: tuple[re.Pattern, ...] = (
    re.compile(r"<<|>>>|>>"),
    re.compile(r"\^"),
    re.compile(r"(?:^|[^|])\|(?:[^|=]|$)", re.MULTILINE),
    re.compile(r"(?:^|[^&])&(?:[^&=]|$)", re.MULTILINE),
)

# Checked on the copy with string contents blanked out.
REDACTED_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bnull\b"), "null"),
    (re.compile(r"\bundefined\b"), "undefined"),
    (re.compile(r"\bas\s+[A-Z_a-z][A-Z_a-z0-9.]*"), "casts"),
)

FOR_IN_RE = re.compile(r"\bfor\s*\([^)]*\bin\b[^)]*\)")
FOR_HEADER_RE = re.compile(r"for\s*\(([^)]*)\)")
FOR_OF_RE = re.compile(r"\bof\b")
FOR_INIT_RE = re.compile(r"^let\s+([A-Z_a-z][A-Z_a-z0-9_]*)\s*=\s*0$")

EVENT_REGISTRATION_RE = re.compile(
    r"\b(?:basic\.forever|loops\.forever|input\.on\w*|radio\.on\w*|pins\.on\w*"
    r"|controller\.\w*\.onEvent|controller\.on\w*|sprites\.on\w*|scene\.on\w*"
    r"|game\.on\w*|info\.on\w*|control\.inBackground)\s*\("
)
FUNCTION_DECL_RE = re.compile(r"^function\s+([A-Z_a-z][A-Z_a-z0-9_]*)\s*\(([^)]*)\)")
BARE_LET_RE = re.compile(r"^let\s+[A-Z_a-z][A-Z_a-z0-9_]*(?:\s*:\s*[^=;]+)?\s*;?$")
NON_ASCII_RE = re.compile(r"[^\x09\x0A\x0D\x20-\x7E]")
ENUM_REFERENCE_RE = re.compile(r"\b([A-Z][A-Za-z0-9_]*)\.([A-Za-z_][A-Za-z0-9_]*)\b")

INVALID_FOR_SHAPE = "invalid for-loop shape"
BAD_FOR_INIT = "for-loop initializer must be let i = 0"
BAD_FOR_CONDITION = "for-loop condition must be i < limit or i <= limit"
BAD_FOR_INCREMENT = "for-loop increment must be i++"


def check_for_loops(code: str) -> list[str]:
    """Every non ``for...of`` header must be ``let i = 0; i < n (or <=); i++``."""
    violations = []
    for match in FOR_HEADER_RE.finditer(code):
        header = match.group(1).strip()
        if FOR_OF_RE.search(header):
            continue
        parts = [part.strip() for part in header.split(";")]
        if len(parts) != 3:
            violations.append(INVALID_FOR_SHAPE)
            continue
        init = FOR_INIT_RE.match(parts[0])
        if not init:
            violations.append(BAD_FOR_INIT)
            continue
        name = re.escape(init.group(1))
        if not re.match(rf"^{name}\s*(?:<|<=)\s*.+$", parts[1]):
            violations.append(BAD_FOR_CONDITION)
        if not re.match(rf"^(?:{name}\+\+|\+\+{name})$", parts[2]):
            violations.append(BAD_FOR_INCREMENT)
    return violations


def check_lines(code: str) -> list[str]:
    """Track brace depth line by line to find nested registrations and declarations."""
    violations = []
    depth = 0
    for line in code.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        trimmed = line.strip()
        if trimmed:
            if depth > 0 and EVENT_REGISTRATION_RE.search(trimmed):
                violations.append("nested event registration")
            declaration = FUNCTION_DECL_RE.match(trimmed)
            if declaration:
                if depth > 0:
                    violations.append("non-top-level function declaration")
                params = declaration.group(2).strip()
                if "?" in params or "=" in params:
                    violations.append("optional/default parameters in function declaration")
            if BARE_LET_RE.match(trimmed):
                violations.append("variable declaration without initializer")
        depth = max(0, depth + line.count("{") - line.count("}"))
    return violations


def _closing_paren(source: str, open_index: int) -> Optional[int]:
    depth = 0
    for i in range(open_index, len(source)):
        if source[i] == "(":
            depth += 1
        elif source[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def _count_arguments(args: str) -> int:
    pieces = []
    depth = 0
    start = 0
    for i, char in enumerate(args):
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(0, depth - 1)
        elif char == "," and depth == 0:
            pieces.append(args[start:i])
            start = i + 1
    pieces.append(args[start:])
    return sum(1 for piece in pieces if piece.strip())


def check_call_signatures(searchable: str) -> list[str]:
    """Flag known micro:bit calls made with an unsupported number of arguments."""
    violations = []
    for call, min_args, max_args in MICROBIT_CALL_SIGNATURES:
        call_re = re.compile(r"\b" + re.escape(call) + r"\s*\(")
        position = 0
        while True:
            match = call_re.search(searchable, position)
            if not match:
                break
            open_index = match.end() - 1
            close_index = _closing_paren(searchable, open_index)
            if close_index is None:
                break
            count = _count_arguments(searchable[open_index + 1 : close_index])
            if count < min_args or count > max_args:
                expected = str(min_args) if min_args == max_args else f"{min_args}-{max_args}"
                violations.append(f"{call} arity (expected {expected}, got {count})")
            position = close_index + 1
    return violations


def check_enum_members(searchable: str) -> list[str]:
    """Flag references to members that do not exist on known micro:bit enums."""
    violations = []
    for match in ENUM_REFERENCE_RE.finditer(searchable):
        enum_name, member = match.groups()
        allowed = MICROBIT_ENUM_MEMBERS.get(enum_name)
        if allowed is not None and member not in allowed:
            violations.append(f"invalid enum member {enum_name}.{member}")
    return violations


def validate(code: str, target=TargetProfile.MICROBIT) -> ValidationResult:
    """Classify ``code`` for ``target`` and list every reason it is not block-safe."""
    code = code or ""
    profile = TargetProfile.resolve(target)
    config = get_target(profile)

    if config.forbidden.search(code):
        return ValidationResult(compliant=False, violations=[config.forbidden_violation])

    redacted = redact_strings(code)
    violations = [why for rule, why in SYNTAX_RULES if rule.search(code)]
    violations.extend(why for rule, why in REDACTED_RULES if rule.search(redacted))
    if any(rule.search(code) for rule in BITWISE_RULES):
        violations.append("bitwise operators")
    if FOR_IN_RE.search(code):
        violations.append("for...in loops")
    violations.extend(check_for_loops(code))
    violations.extend(check_lines(code))

    if profile is TargetProfile.MICROBIT:
        searchable = strip_non_code(code)
        violations.extend(check_enum_members(searchable))
        violations.extend(check_call_signatures(searchable))

    if NON_ASCII_RE.search(code):
        violations.append("non-ASCII characters")
    return ValidationResult.from_violations(violations)
