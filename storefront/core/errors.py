"""
Application error taxonomy.

Every error a caller may see is an ``AppError`` carrying a stable machine
code and an HTTP status. Anything else is masked by the error middleware.
"""
from fastapi import status


class AppError(Exception):
    """Base class for user-visible failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "internal_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class InvalidInputError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_input"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"


class ConflictError(AppError):
    """A state transition was attempted from a state that does not allow it."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class UpstreamUnavailableError(AppError):
    """An external collaborator failed or is not configured."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "upstream_unavailable"


class NotConfiguredError(UpstreamUnavailableError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "not_configured"


class SignatureInvalidError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_webhook_signature"
