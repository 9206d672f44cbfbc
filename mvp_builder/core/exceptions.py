"""
Custom exception hierarchy for the MVP builder.

All application exceptions inherit from MVPBuilderError.
"""

from typing import List, Optional


class MVPBuilderError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(MVPBuilderError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(MVPBuilderError):
    """Base for LLM-related errors."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call timed out."""

    pass


class LLMRateLimitError(LLMError):
    """LLM rate limit exceeded."""

    pass


class LLMResponseParseError(LLMError):
    """Failed to parse LLM response."""

    pass


# =============================================================================
# Session / Stage Errors
# =============================================================================


class SessionError(MVPBuilderError):
    """Session-related error."""

    pass


class SessionNotFoundError(SessionError):
    """Session does not exist."""

    pass


class SessionExistsError(SessionError):
    """A session with the requested id already exists."""

    pass


class UnknownStageError(SessionError):
    """Stage id is not part of the catalog."""

    pass


# =============================================================================
# Customer Errors
# =============================================================================


class CustomerError(MVPBuilderError):
    """Customer/subscription error."""

    pass


class CustomerNotFoundError(CustomerError):
    """Customer does not exist."""

    pass


class CustomerExistsError(CustomerError):
    """Customer with this id already exists."""

    pass


# =============================================================================
# Input / Export Errors
# =============================================================================


class ValidationError(MVPBuilderError):
    """Input validation failed.

    Carries the individual field messages so the UI can show them inline.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class ExportError(MVPBuilderError):
    """Export document could not be produced or found."""

    pass
