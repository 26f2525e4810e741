class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class DeviceNotAuthorized(AuthorizationError):
    """Raised when a day is started from a device other than the registered kiosk."""


class NoActiveSession(DomainError):
    """Raised when a transition needs an open check-in and there is none."""


class StoreUnavailable(DomainError):
    """Raised when the backing store fails during an operation."""
