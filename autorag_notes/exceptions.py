"""Exception hierarchy for the AutoRAG Notes MCP server.

Every error raised by this package derives from :class:`NotesError`, which
carries a machine-readable :class:`ErrorCode` and a ``details`` mapping so that
tool payloads and HTTP responses can be built from the same object.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Authentication errors (1xxx)
    AUTHENTICATION_REQUIRED = 1001
    INVALID_STATE = 1002
    MISSING_CODE = 1003
    TOKEN_EXCHANGE_FAILED = 1004
    PROFILE_FETCH_FAILED = 1005
    DOMAIN_NOT_ALLOWED = 1006

    # Storage errors (2xxx)
    STORAGE_READ_FAILED = 2001
    STORAGE_WRITE_FAILED = 2002
    STORAGE_DELETE_FAILED = 2003
    STORAGE_PARTIAL_WRITE = 2004
    INVALID_KEY = 2005

    # Upstream service errors (3xxx)
    UPSTREAM_FAILED = 3001
    UPSTREAM_INVALID_RESPONSE = 3002

    # Configuration errors (4xxx)
    CONFIG_MISSING = 4001


class NotesError(Exception):
    """Base exception for all AutoRAG Notes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UPSTREAM_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class ConfigurationError(NotesError):
    """Raised when a required setting is missing or invalid."""

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(
            message,
            code=ErrorCode.CONFIG_MISSING,
            details={"missing": missing} if missing else None,
        )
        self.missing = missing or []


class AuthenticationRequiredError(NotesError):
    """Raised when a tool is invoked without a verified user identity."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code=ErrorCode.AUTHENTICATION_REQUIRED)


# ==============================================================================
# OAUTH CALLBACK ERRORS
# ==============================================================================


class OAuthCallbackError(NotesError):
    """Base class for failures while handling the identity provider callback.

    ``status_code`` is the HTTP status the callback route answers with.
    """

    status_code = 400


class InvalidStateError(OAuthCallbackError):
    """Raised when the ``state`` parameter is missing, malformed or unknown."""

    def __init__(self, message: str = "Invalid state parameter"):
        super().__init__(message, code=ErrorCode.INVALID_STATE)


class MissingCodeError(OAuthCallbackError):
    """Raised when the callback carries no authorization code."""

    def __init__(self, message: str = "Missing authorization code"):
        super().__init__(message, code=ErrorCode.MISSING_CODE)


class TokenExchangeError(OAuthCallbackError):
    """Raised when the token endpoint rejects the authorization code."""

    status_code = 500

    def __init__(self, message: str = "Failed to fetch access token", status: Optional[int] = None):
        super().__init__(
            message,
            code=ErrorCode.TOKEN_EXCHANGE_FAILED,
            details={"status": status} if status is not None else None,
        )


class ProfileFetchError(OAuthCallbackError):
    """Raised when the user profile cannot be fetched."""

    status_code = 500

    def __init__(self, message: str = "Failed to fetch user information", status: Optional[int] = None):
        super().__init__(
            message,
            code=ErrorCode.PROFILE_FETCH_FAILED,
            details={"status": status} if status is not None else None,
        )


class DomainNotAllowedError(OAuthCallbackError):
    """Raised when the authenticated account is outside the domain allowlist."""

    status_code = 403

    def __init__(self, email: str, allowed_domains: list[str], domain: Optional[str] = None):
        super().__init__(
            f"Account '{email}' is not in an allowed domain",
            code=ErrorCode.DOMAIN_NOT_ALLOWED,
            details={"email": email, "domain": domain, "allowed_domains": allowed_domains},
        )
        self.email = email
        self.domain = domain
        self.allowed_domains = allowed_domains


# ==============================================================================
# STORAGE ERRORS
# ==============================================================================


class StorageError(NotesError):
    """Raised when an object store operation fails."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(message, code=code, details=details)
        self.key = key
        self.original_error = original_error


class PartialWriteError(StorageError):
    """Raised when only one object of a note/sidecar pair could be written."""

    def __init__(self, note_id: str, failed_keys: list[str], rolled_back: list[str]):
        super().__init__(
            f"Note '{note_id}' was not saved: {len(failed_keys)} of 2 writes failed",
            code=ErrorCode.STORAGE_PARTIAL_WRITE,
        )
        self.details.update(
            {"note_id": note_id, "failed_keys": failed_keys, "rolled_back": rolled_back}
        )
        self.note_id = note_id
        self.failed_keys = failed_keys
        self.rolled_back = rolled_back


# ==============================================================================
# UPSTREAM ERRORS
# ==============================================================================


class UpstreamServiceError(NotesError):
    """Raised when an external service call fails or answers unexpectedly."""

    def __init__(
        self,
        service: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        code: ErrorCode = ErrorCode.UPSTREAM_FAILED,
    ):
        details: Dict[str, Any] = {"service": service}
        if status_code is not None:
            details["status"] = status_code
        if body:
            details["body"] = body[:500]
        super().__init__(message, code=code, details=details)
        self.service = service
        self.status_code = status_code
        self.body = body
