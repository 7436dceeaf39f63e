class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when no usable identity accompanies a request."""


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""


class DuplicateRecordError(DomainError):
    """Raised by repositories when a unique constraint rejects an insert."""


class StorageUnavailableError(DomainError):
    """Raised when the database cannot be reached. Safe to retry."""
