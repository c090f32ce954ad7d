"""Error kinds raised by the Warp core."""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Stable error codes returned to API clients."""

    VALIDATION_ERROR = 100
    FORBIDDEN_OPERATION = 101
    INVALID_CREDENTIALS = 102
    INVALID_SESSION_TOKEN = 103
    DATABASE_ERROR = 104
    MODEL_NOT_FOUND = 105
    OBJECT_NOT_FOUND = 106
    FUNCTION_NOT_FOUND = 107
    INVALID_API_KEY = 108


class WarpError(Exception):
    """Base class for errors surfaced to API clients."""

    code: ErrorCode
    status: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        """Message safe to return to the caller."""
        return self.message


class ValidationError(WarpError):
    """Malformed query shape, unknown operator or invalid keys."""

    code = ErrorCode.VALIDATION_ERROR


class ForbiddenOperation(WarpError):
    """An authorization rule was violated."""

    code = ErrorCode.FORBIDDEN_OPERATION
    status = 403


class InvalidCredentials(WarpError):
    """Login identifier/password mismatch."""

    code = ErrorCode.INVALID_CREDENTIALS
    status = 401

    def __init__(self, message: str = "Invalid username/password") -> None:
        super().__init__(message)


class InvalidSessionToken(WarpError):
    """Session token absent, revoked or expired."""

    code = ErrorCode.INVALID_SESSION_TOKEN
    status = 401

    def __init__(self, message: str = "Session does not exist") -> None:
        super().__init__(message)


class DatabaseError(WarpError):
    """Storage layer failure."""

    code = ErrorCode.DATABASE_ERROR

    @property
    def public_message(self) -> str:
        return "Invalid query request"


class ModelNotFound(WarpError):
    """No model class is registered under the requested name."""

    code = ErrorCode.MODEL_NOT_FOUND
    status = 404


class ObjectNotFound(WarpError):
    """The targeted record does not exist."""

    code = ErrorCode.OBJECT_NOT_FOUND
    status = 404


class FunctionNotFound(WarpError):
    """No function is registered under the requested name."""

    code = ErrorCode.FUNCTION_NOT_FOUND
    status = 404


class InvalidApiKey(WarpError):
    """Application API key absent or wrong."""

    code = ErrorCode.INVALID_API_KEY
    status = 401

    def __init__(self, message: str = "Invalid API key") -> None:
        super().__init__(message)


class DuplicateSessionToken(Exception):  # noqa: N818
    """Raised by session storage when a token value is already taken."""
