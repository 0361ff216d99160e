"""Custom exception hierarchy for the book generation service."""

from typing import Optional


class BookGenError(Exception):
    """Base exception for all book generation errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- Provider Errors ----

class LLMError(BookGenError):
    """Base exception for generation provider errors."""


class LLMRateLimitError(LLMError):
    """Provider rate limit exceeded."""

    def __init__(self, message: str = "API rate limit exceeded", retry_after: Optional[float] = None):
        details = {}
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(message, details)
        self.retry_after = retry_after


class LLMTimeoutError(LLMError):
    """Provider request timed out."""


class LLMResponseParseError(LLMError):
    """Provider response could not be parsed."""

    def __init__(self, message: str = "Failed to parse LLM response", raw_response: str = ""):
        details = {"raw_response": raw_response[:200]} if raw_response else {}
        super().__init__(message, details)
        self.raw_response = raw_response


class ProviderAuthError(LLMError):
    """Provider credentials are missing or were rejected."""


class QuotaExceededError(LLMError):
    """Provider account quota or billing limit reached."""


# ---- Database Errors ----

class DatabaseError(BookGenError):
    """Database operation failed."""


class BookNotFoundError(DatabaseError):
    """Requested book does not exist (or belongs to another user)."""

    def __init__(self, book_id: int):
        super().__init__(f"Book {book_id} not found", {"book_id": book_id})
        self.book_id = book_id


# ---- Workflow Errors ----

class WorkflowError(BookGenError):
    """Base exception for orchestration errors."""


class BatchGenerationError(WorkflowError):
    """A parallel batch failed because at least one sibling chapter failed."""

    def __init__(self, chapter_numbers: list[int], cause: BaseException):
        super().__init__(
            f"Batch generation failed: {cause}",
            {"chapters": ",".join(str(n) for n in chapter_numbers)},
        )
        self.chapter_numbers = list(chapter_numbers)
        self.cause = cause


class BatchSizeError(WorkflowError):
    """A batch larger than the configured batch size was submitted."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Batch of {size} chapters exceeds the limit of {limit}",
            {"size": size, "limit": limit},
        )


class IncompleteRunError(WorkflowError):
    """Every missing chapter was attempted but some still failed."""

    def __init__(self, missing: list[int]):
        super().__init__(
            f"{len(missing)} chapter(s) could not be generated",
            {"missing": ",".join(str(n) for n in missing)},
        )
        self.missing = list(missing)


# ---- Validation Errors ----

class ValidationError(BookGenError):
    """Input validation failed."""


class MissingFieldsError(ValidationError):
    """Required request fields are absent."""

    def __init__(self, fields: list[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}", {"fields": fields})
        self.fields = list(fields)


class InvalidConfigError(ValidationError):
    """Configuration value is invalid."""
