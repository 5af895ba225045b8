class ServiceError(Exception):
    """Base exception for service layer failures."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(ServiceError):
    """Raised when the request is well formed but violates a business rule."""

    status_code = 400


class PermissionDeniedError(ServiceError):
    """Raised when the acting user may not touch the requested resource."""

    status_code = 403


class NotFoundError(ServiceError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class DownstreamServiceError(ServiceError):
    """Raised when an external service returns an error response."""

    status_code = 502
