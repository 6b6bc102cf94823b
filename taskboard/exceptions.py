class AuthenticationError(Exception):
    """Raised when a session token or login credential is missing or invalid."""


class NotFoundError(Exception):
    """Raised when a task or user does not exist for the caller."""


class ConflictError(Exception):
    """Raised when a write would violate a uniqueness rule (e.g. duplicate email)."""


class InvalidRequestError(Exception):
    """Raised when a request is well-formed but cannot be honoured."""
