"""
Pipeline error hierarchy.

Whole-document failures raise a PipelineError subclass. Per-page and per-row
problems never raise; they become warnings and lower confidence. A document
that yields text but no transactions is a ParseResult outcome, not an error.
"""

from typing import Optional


class PipelineError(Exception):
    """Fatal pipeline error."""

    error_code = "ERR_PIPELINE"
    retryable = False

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message)


class ConfigurationError(PipelineError):
    """A required engine or credential is not set up. Operator must fix."""
    error_code = "ERR_CONFIG"


class OcrNotConfiguredError(ConfigurationError):
    error_code = "ERR_OCR_NOT_CONFIGURED"


class ClassifierNotConfiguredError(ConfigurationError):
    error_code = "ERR_AI_NOT_CONFIGURED"


class QuotaExceededError(PipelineError):
    """Upstream quota or rate limit hit. Caller may retry after backoff."""
    error_code = "ERR_QUOTA"
    retryable = True


class OcrQuotaExceededError(QuotaExceededError):
    error_code = "ERR_OCR_QUOTA"


class ClassifierRateLimitedError(QuotaExceededError):
    error_code = "ERR_AI_RATE_LIMITED"


class OcrAuthError(PipelineError):
    """OCR credentials rejected."""
    error_code = "ERR_OCR_AUTH"


class InvalidInputError(PipelineError):
    """Not a PDF, corrupt PDF, or page index out of range."""
    error_code = "ERR_INVALID_INPUT"


class PipelineTimeoutError(PipelineError):
    error_code = "ERR_TIMEOUT"
    retryable = True
