"""
Typed service errors

Services raise these; app.main maps them to the JSON error envelope.
"""


class ServiceError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 400
    error = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(ServiceError):
    """Missing or malformed identifiers in the request"""
    status_code = 400
    error = "invalid_argument"


class UnauthorizedError(ServiceError):
    """The operation needs an identity and none could be resolved"""
    status_code = 401
    error = "unauthorized"


class NotFoundError(ServiceError):
    """Referenced book, chapter or user does not exist"""
    status_code = 404
    error = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    error = "conflict"


class TransientStoreError(ServiceError):
    """Underlying data store call failed; not retried here"""
    status_code = 503
    error = "store_unavailable"
