"""Error taxonomy shared by the workflow services and the HTTP layer.

Services raise these; ``restaurant.main`` renders each one as
``{"error": <message>}`` with the class's status code.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class AuthenticationError(ServiceError):
    status_code = 401


class AuthorizationError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    """Referenced entity is absent or not visible to the caller.

    Both cases share one message so other users' rows stay indistinguishable from missing ones.
    """
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class UpstreamError(ServiceError):
    """Payment gateway or other remote dependency failed; safe to retry."""
    status_code = 502


class InternalError(ServiceError):
    status_code = 500
