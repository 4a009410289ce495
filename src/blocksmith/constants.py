"""Constants used throughout the application."""

# Retry ladder settings
DEFAULT_EMPTY_RETRIES = 2
DEFAULT_VALIDATION_RETRIES = 2
MAX_RETRIES = 5

# Provider call settings (seconds)
DEFAULT_REQUEST_TIMEOUT = 60.0
MIN_REQUEST_TIMEOUT = 5.0
MAX_REQUEST_TIMEOUT = 180.0
CANCEL_POLL_INTERVAL = 0.1

# Request shaping
MAX_PAGE_ERRORS = 8
MAX_DIALOG_TITLE_CHARS = 220
MAX_DIALOG_DESCRIPTION_CHARS = 320

# Feedback messages
DEFAULT_FEEDBACK = "Model completed generation without explicit feedback notes."
EMPTY_CODE_FEEDBACK = "Model returned no code; provided fallback stub."
VALIDATION_FALLBACK_PREFIX = "Validation fallback: "
UNKNOWN_VIOLATION = "unknown compatibility issue"
