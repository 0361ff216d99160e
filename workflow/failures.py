"""Classify provider and transport errors for user-facing reports.

Providers do not expose structured error codes at this layer, so untyped
errors are matched against known vocabulary. All patterns live in one table.
This module only describes failures; retry policy lives in the scheduler.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from config.exceptions import (
    BookGenError,
    LLMRateLimitError,
    LLMTimeoutError,
    ProviderAuthError,
    QuotaExceededError,
)

logger = logging.getLogger(__name__)

PROGRESS_SAVED_HINT = "Progress has been saved. Generate again to continue from the first missing chapter."


class FailureKind(str, Enum):
    QUOTA = "quota"
    RATE_LIMIT = "rate-limit"
    AUTH = "auth"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FailureReport:
    kind: FailureKind
    user_message: str
    user_details: str
    hint: str = PROGRESS_SAVED_HINT

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "error": self.user_message,
            "details": self.user_details,
            "hint": self.hint,
        }


# Checked in order; first match wins
_PATTERNS: list[tuple[FailureKind, tuple[str, ...]]] = [
    (FailureKind.QUOTA, ("quota",)),
    (FailureKind.RATE_LIMIT, ("rate limit", "429")),
    (FailureKind.AUTH, ("api key",)),
    (FailureKind.TIMEOUT, ("timeout",)),
]

_TYPED: list[tuple[type, FailureKind]] = [
    (QuotaExceededError, FailureKind.QUOTA),
    (LLMRateLimitError, FailureKind.RATE_LIMIT),
    (ProviderAuthError, FailureKind.AUTH),
    (LLMTimeoutError, FailureKind.TIMEOUT),
]

_MESSAGES: dict[FailureKind, tuple[str, str]] = {
    FailureKind.QUOTA: (
        "API quota exceeded",
        "Please check your API billing and usage limits.",
    ),
    FailureKind.RATE_LIMIT: (
        "Rate limit exceeded",
        "Too many requests. Please wait a few minutes and try again.",
    ),
    FailureKind.AUTH: (
        "API key error",
        "Invalid or missing API key.",
    ),
    FailureKind.TIMEOUT: (
        "Generation timeout",
        "The request took too long. Progress has been saved - click Generate again to continue.",
    ),
}


def _error_text(error: BaseException) -> str:
    if isinstance(error, BookGenError):
        return error.message
    return str(error)


def classify_kind(error: BaseException) -> FailureKind:
    for exc_type, kind in _TYPED:
        if isinstance(error, exc_type):
            return kind
    text = _error_text(error).lower()
    for kind, needles in _PATTERNS:
        if any(needle in text for needle in needles):
            return kind
    return FailureKind.UNKNOWN


def classify(error: BaseException) -> FailureReport:
    """Turn an exception into a short message, longer details and a hint."""
    kind = classify_kind(error)
    if kind == FailureKind.UNKNOWN:
        message, details = "Failed to generate book", _error_text(error) or "Unknown error"
    else:
        message, details = _MESSAGES[kind]
    logger.debug("Classified %s as %s", type(error).__name__, kind.value)
    return FailureReport(kind=kind, user_message=message, user_details=details)
