"""Custom exceptions for the Scribe Chat backend.

Every error carries a ``category`` from the chat error taxonomy:

- ``not_found``: a referenced record no longer exists
- ``provider_error``: a CRM provider call failed
- ``config_error``: required configuration (e.g. the model key) is missing
- ``transport_error``: the model service failed or was unreachable
- ``parse_error``: the model service answered without usable text

Only the last three are surfaced to the user during a chat turn.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Exception type → safe user-facing message mapping
_SAFE_MESSAGES: dict[str, str] = {
    "NotFoundError": "The requested resource was not found.",
    "AuthenticationError": "Authentication failed. Please log in again.",
    "AuthorizationError": "You do not have permission to perform this action.",
    "ValidationError": "The provided input is invalid. Please check and try again.",
    "DatabaseError": "A database error occurred. Please try again.",
    "CRMProviderError": "A connected CRM is temporarily unavailable.",
    "ConfigError": "The assistant is not configured. Please contact support.",
    "ResponseParseError": "Something went wrong while generating a response. Please try again.",
    "CircuitBreakerOpen": "A service dependency is temporarily unavailable. Please try again in a moment.",
    "ValueError": "The provided value is invalid.",
}

_DEFAULT_MESSAGE = "An error occurred. Please try again."


def sanitize_error(e: Exception) -> str:
    """Map an exception to a safe, user-facing error message.

    Exceptions that define their own ``user_message`` win; otherwise the MRO
    is walked to find the most specific mapped type.

    Args:
        e: The exception to sanitize.

    Returns:
        A safe, generic error message string.
    """
    user_message = getattr(e, "user_message", None)
    if isinstance(user_message, str) and user_message:
        return user_message

    for cls in type(e).__mro__:
        safe_msg = _SAFE_MESSAGES.get(cls.__name__)
        if safe_msg:
            return safe_msg

    return _DEFAULT_MESSAGE


class ScribeChatError(Exception):
    """Base exception for all Scribe Chat errors."""

    category: str = "error"

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(ScribeChatError):
    """Resource not found error (404)."""

    category = "not_found"

    def __init__(self, resource: str, resource_id: str | int | None = None) -> None:
        """Initialize not found error.

        Args:
            resource: Name of the resource that was not found.
            resource_id: Optional ID of the resource.
        """
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
        )


class AuthenticationError(ScribeChatError):
    """Authentication failed error (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


class AuthorizationError(ScribeChatError):
    """Authorization/permission denied error (403)."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message=message, code="AUTHORIZATION_ERROR", status_code=403)


class ValidationError(ScribeChatError):
    """Input validation error (400)."""

    def __init__(
        self, message: str, field: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error message.
            field: Name of the invalid field.
            details: Additional validation details.
        """
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=error_details,
        )


class DatabaseError(ScribeChatError):
    """Database operation error (500)."""

    def __init__(self, message: str = "A database error occurred") -> None:
        super().__init__(message=message, code="DATABASE_ERROR", status_code=500)


class CRMProviderError(ScribeChatError):
    """A CRM provider search failed (502).

    Never fails a chat turn: the snapshot gatherer and contact search treat it
    as "no data from this provider".
    """

    category = "provider_error"

    def __init__(
        self,
        provider: str,
        message: str | None = None,
        status: int | None = None,
    ) -> None:
        """Initialize CRM provider error.

        Args:
            provider: Provider name (``hubspot``, ``salesforce``).
            message: Optional error detail.
            status: HTTP status returned by the provider, if any.
        """
        error_message = message or f"Error communicating with {provider}"
        super().__init__(
            message=error_message,
            code="CRM_PROVIDER_ERROR",
            status_code=502,
            details={"provider": provider, "status": status},
        )
        self.provider = provider
        self.status = status


class ConfigError(ScribeChatError):
    """Required configuration is missing (500)."""

    category = "config_error"

    def __init__(self, message: str) -> None:
        super().__init__(
            message=f"Configuration error: {message}",
            code="CONFIG_ERROR",
            status_code=500,
        )


class TransportError(ScribeChatError):
    """The language-model service failed or could not be reached (502).

    ``status`` is the HTTP status when the service answered, ``None`` for
    network failures and timeouts.
    """

    category = "transport_error"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(
            message=message,
            code="TRANSPORT_ERROR",
            status_code=503 if status in (429, 503) else 502,
            details={"status": status},
        )
        self.status = status

    @property
    def user_message(self) -> str:
        """Message safe to show in the chat window."""
        if self.status == 429:
            return "I'm receiving too many requests right now. Please wait a moment and try again."
        if self.status == 503:
            return "The AI service is temporarily unavailable. Please try again in a few moments."
        if self.status is None:
            return "Unable to connect to the AI service. Please check your connection and try again."
        return "Something went wrong while generating a response. Please try again."


class ResponseParseError(ScribeChatError):
    """The model response did not contain any text (502)."""

    category = "parse_error"

    def __init__(self, message: str = "No text content found in model response") -> None:
        super().__init__(message=message, code="PARSE_ERROR", status_code=502)
