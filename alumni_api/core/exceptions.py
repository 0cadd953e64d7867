"""Custom exception classes for the Alumni Content Service."""
from typing import Optional, Dict, Any


class ContentServiceException(Exception):
    """Base exception for all application-specific exceptions."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ContentServiceException):
    """Exception raised for bad or missing input. Carries the offending field."""

    def __init__(
        self,
        field: Optional[str],
        reason: str,
        error_code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.field = field
        self.reason = reason
        message = f"{field}: {reason}" if field else reason
        super().__init__(message, error_code=error_code, details=details)


class AttachmentRejectedError(ContentServiceException):
    """Exception raised when an uploaded attachment fails policy validation."""
    pass


class InvalidAttachmentTypeError(AttachmentRejectedError):
    """Attachment MIME type is not allowed by the upload policy."""
    pass


class AttachmentTooLargeError(AttachmentRejectedError):
    """Attachment exceeds the upload policy size limit."""
    pass


class AuthenticationError(ContentServiceException):
    """Exception raised for authentication errors."""
    pass


class UnauthorizedError(ContentServiceException):
    """Exception raised when the caller lacks the admin claim."""
    pass


class NotFoundError(ContentServiceException):
    """Exception raised when a resource is not found."""
    pass


class ConflictError(ContentServiceException):
    """Exception raised for resource conflicts (e.g., duplicate entries)."""
    pass


class StorageUnavailableError(ContentServiceException):
    """Exception raised when a storage call times out or its backend fails."""
    pass


class ConfigurationError(ContentServiceException):
    """Exception raised for configuration errors."""
    pass


# First matching group wins; checked against the lower-cased error text
_SENSITIVE_MESSAGES = (
    (("password", "credential", "service_key", "apikey"), "Authentication failed. Please check your credentials."),
    (("token", "jwt", "auth"), "Authentication error. Please login again."),
    (("connection", "postgrest", "database", "bucket", "storage"), "Storage connection error. Please try again later."),
    (("secret", "key", "sql", "query"), "An error occurred. Please try again or contact support."),
)


def sanitize_error_message(error: Exception, include_details: bool = False) -> str:
    """
    Turn an unexpected exception into a message that is safe to return.

    Application exceptions keep their own message. Outside debug mode, anything
    mentioning credentials, tokens or storage internals is replaced by a generic
    message for that category.
    """
    from alumni_api.core import config

    if isinstance(error, ContentServiceException):
        return error.message

    debug = bool(config.settings and config.settings.DEBUG)
    text = str(error)
    if not debug:
        lowered = text.lower()
        for patterns, message in _SENSITIVE_MESSAGES:
            if any(p in lowered for p in patterns):
                return message

    if debug or include_details:
        return f"{type(error).__name__}: {text}"
    return "An error occurred. Please try again."
