"""Configuration package: settings, logging, and exceptions."""

from config.exceptions import (
    BookGenError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
    LLMResponseParseError,
    ProviderAuthError,
    QuotaExceededError,
    DatabaseError,
    BookNotFoundError,
    WorkflowError,
    BatchGenerationError,
    BatchSizeError,
    IncompleteRunError,
    ValidationError,
    MissingFieldsError,
    InvalidConfigError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "BookGenError",
    "LLMError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "LLMResponseParseError",
    "ProviderAuthError",
    "QuotaExceededError",
    "DatabaseError",
    "BookNotFoundError",
    "WorkflowError",
    "BatchGenerationError",
    "BatchSizeError",
    "IncompleteRunError",
    "ValidationError",
    "MissingFieldsError",
    "InvalidConfigError",
]
