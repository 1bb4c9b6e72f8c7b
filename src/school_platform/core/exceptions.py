class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a tenant-scoped lookup finds nothing."""


class ConflictError(DomainError):
    """Raised when an action collides with existing state."""


class CodecFailure(Exception):
    """Infrastructure failure while encoding, decoding or rendering a token.

    Not a bad-input outcome: a rejected scan is ``None``, never this.
    """


class IssuanceFailure(CodecFailure):
    """Raised when a session token cannot be generated or rendered."""
