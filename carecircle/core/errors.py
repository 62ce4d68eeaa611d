"""Service-layer error kinds.

Services raise these; the API maps each kind to one HTTP status in
``carecircle.main``. Nothing here is swallowed: audit and outbox writes share
the mutation's transaction, so a storage failure fails the whole operation.
"""


class ServiceError(Exception):
    """Base exception for service errors."""

    code = "service_error"
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    """Entity not found."""

    code = "not_found"
    status_code = 404


class ForbiddenError(ServiceError):
    """Actor lacks circle membership or the required role."""

    code = "forbidden"
    status_code = 403


class InvalidArgumentError(ServiceError):
    """Request argument is invalid."""

    code = "invalid_argument"
    status_code = 400


class ConflictError(ServiceError):
    """Concurrent modification or duplicate state."""

    code = "conflict"
    status_code = 409


class AlreadyTriagedError(ConflictError):
    """Inbox item has already been triaged."""

    code = "already_triaged"


class ExpiredError(ServiceError):
    """Share link has expired."""

    code = "expired"
    status_code = 410


class RevokedError(ServiceError):
    """Share link has been revoked."""

    code = "revoked"
    status_code = 410


class AccessLimitReachedError(ServiceError):
    """Share link access limit reached."""

    code = "access_limit_reached"
    status_code = 410


class RateLimitedError(ServiceError):
    """Too many requests."""

    code = "rate_limited"
    status_code = 429

    def __init__(self, message: str | None = None, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(message)


class UnavailableError(ServiceError):
    """Underlying store is unavailable."""

    code = "unavailable"
    status_code = 503
