import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from blocksmith.constants import (
    DEFAULT_EMPTY_RETRIES,
    DEFAULT_VALIDATION_RETRIES,
    MAX_DIALOG_DESCRIPTION_CHARS,
    MAX_DIALOG_TITLE_CHARS,
    MAX_PAGE_ERRORS,
    MAX_RETRIES,
)

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse(value: Any) -> str:
    return _WHITESPACE_RE.sub(" ", str(value or "")).strip()


class TargetProfile(str, Enum):
    """Supported editor targets."""

    MICROBIT = "microbit"
    ARCADE = "arcade"
    MAKER = "maker"

    @classmethod
    def resolve(cls, value: Any) -> "TargetProfile":
        """Map any value to a target, defaulting to micro:bit."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MICROBIT


class ConversionDialog(BaseModel):
    """Title and message of the editor's JavaScript-to-Blocks conversion dialog."""

    title: str = Field("", description="Dialog title")
    description: str = Field("", description="Dialog message body")

    @field_validator("title", mode="before")
    @classmethod
    def _clip_title(cls, value: Any) -> str:
        return _collapse(value)[:MAX_DIALOG_TITLE_CHARS]

    @field_validator("description", mode="before")
    @classmethod
    def _clip_description(cls, value: Any) -> str:
        return _collapse(value)[:MAX_DIALOG_DESCRIPTION_CHARS]

    def is_empty(self) -> bool:
        return not (self.title or self.description)


class GenerationRequest(BaseModel):
    """A single code generation request."""

    target: TargetProfile = Field(TargetProfile.MICROBIT, description="Editor target profile")
    instruction: str = Field(..., min_length=1, description="What the user asked for")
    existing_code: str = Field("", description="Code currently open in the editor")
    page_errors: list[str] = Field(default_factory=list, description="Diagnostics shown by the editor")
    dialog_note: Optional[ConversionDialog] = Field(None, description="Conversion dialog shown by the editor")
    provider_override: Optional[str] = Field(None, description="Provider to use instead of the default")
    model_override: Optional[str] = Field(None, description="Model to use instead of the provider default")

    @field_validator("target", mode="before")
    @classmethod
    def _resolve_target(cls, value: Any) -> TargetProfile:
        return TargetProfile.resolve(value)

    @field_validator("instruction", mode="before")
    @classmethod
    def _strip_instruction(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("existing_code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("page_errors", mode="before")
    @classmethod
    def _bound_page_errors(cls, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)):
            return []
        errors = [_collapse(item) for item in value]
        return [error for error in errors if error][:MAX_PAGE_ERRORS]

    @field_validator("provider_override", mode="before")
    @classmethod
    def _normalise_provider(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip().lower()
        return text or None

    @field_validator("model_override", mode="before")
    @classmethod
    def _normalise_model(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None


class ParsedOutput(BaseModel):
    """Feedback notes and code pulled out of a raw provider response."""

    feedback: list[str] = Field(default_factory=list)
    code: str = ""


class ValidationResult(BaseModel):
    """Outcome of classifying code against a target."""

    compliant: bool
    violations: list[str] = Field(default_factory=list)

    @classmethod
    def from_violations(cls, violations: list[str]) -> "ValidationResult":
        unique = list(dict.fromkeys(violations))
        return cls(compliant=not unique, violations=unique)


class RetryBudgets(BaseModel):
    """How many corrective retries the orchestrator may issue."""

    empty_retries: int = Field(DEFAULT_EMPTY_RETRIES, ge=0, le=MAX_RETRIES)
    validation_retries: int = Field(DEFAULT_VALIDATION_RETRIES, ge=0, le=MAX_RETRIES)


class GenerationOutcome(BaseModel):
    """Final code and feedback handed back to the caller."""

    code: str = Field(..., min_length=1)
    feedback: list[str] = Field(..., min_length=1)
