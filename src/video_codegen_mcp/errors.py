"""Structured error handling — pipeline exceptions, categories, and tool error model."""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel


class CodegenError(Exception):
    """Base class for fatal pipeline errors (no fallback is attempted)."""


class MissingCredentialError(CodegenError):
    """The configured LLM provider has no API key — a deployment problem."""


class ScriptNotFoundError(CodegenError, LookupError):
    """The requested script id does not exist in the job store."""


class CompositionBuildError(CodegenError):
    """The host failed to turn validated code text into a callable."""


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    CONFIG_MISSING_CREDENTIAL = "CONFIG_MISSING_CREDENTIAL"
    CONFIG_INVALID = "CONFIG_INVALID"
    SCRIPT_NOT_FOUND = "SCRIPT_NOT_FOUND"
    COMPOSITION_BUILD_FAILED = "COMPOSITION_BUILD_FAILED"
    API_PERMISSION_DENIED = "API_PERMISSION_DENIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    API_INVALID_ARGUMENT = "API_INVALID_ARGUMENT"
    NETWORK_ERROR = "NETWORK_ERROR"
    STORE_ERROR = "STORE_ERROR"
    UNKNOWN = "UNKNOWN"


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    s = str(error).lower()

    if isinstance(error, MissingCredentialError):
        return (
            ErrorCategory.CONFIG_MISSING_CREDENTIAL,
            "Set OPENROUTER_API_KEY (or GEMINI_API_KEY with CODEGEN_PROVIDER=gemini)",
        )
    if isinstance(error, ScriptNotFoundError):
        return (
            ErrorCategory.SCRIPT_NOT_FOUND,
            "Script not found — store it with codegen_save_script first",
        )
    if isinstance(error, CompositionBuildError):
        return (
            ErrorCategory.COMPOSITION_BUILD_FAILED,
            "The rendering host could not construct the composition from the code",
        )
    if isinstance(error, (TimeoutError, httpx.TimeoutException, httpx.NetworkError)):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out or connection failed — try again or check connectivity",
        )
    if "401" in s or "403" in s:
        return (
            ErrorCategory.API_PERMISSION_DENIED,
            "API key rejected — check the provider credential and model access",
        )
    if "429" in s or "quota" in s or "resource_exhausted" in s:
        return (
            ErrorCategory.API_QUOTA_EXCEEDED,
            "Rate limit hit — wait and retry",
        )
    if "400" in s:
        return (
            ErrorCategory.API_INVALID_ARGUMENT,
            "Bad request — check input format",
        )
    if "invalid codegen provider" in s:
        return (
            ErrorCategory.CONFIG_INVALID,
            "CODEGEN_PROVIDER must be 'openrouter' or 'gemini'",
        )
    if "timeout" in s or "timed out" in s:
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )
    if "sqlite" in s or "database" in s:
        return (
            ErrorCategory.STORE_ERROR,
            "Job store unavailable — check CODEGEN_JOB_DB",
        )

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.NETWORK_ERROR,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
