"""
Domain Errors - Business Logic Exceptions

This module defines domain-specific exceptions that represent
business rule violations and domain errors. The HTTP adapter maps
each family to a status code (see swappoints.adapters.http.errors).
"""


class DomainError(Exception):
    """Base exception for domain errors."""
    pass


class ValidationError(DomainError):
    """Raised when input is missing or malformed."""
    pass


class NotFoundError(DomainError):
    """Raised when a user, order or transaction does not exist."""
    pass


class ConflictError(DomainError):
    """Raised when a request conflicts with the current state."""
    pass


class AlreadyExistsError(ConflictError):
    """Raised when registering a phone that is already taken."""
    pass


class InvalidTransitionError(ConflictError):
    """Raised when an order or transaction cannot move to the requested status."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target


class InsufficientFundsError(DomainError):
    """Raised when a debit would drive a balance below zero."""
    pass


class UnauthorizedError(DomainError):
    """Raised on a bad password or missing admin credentials."""
    pass


class StoreUnavailableError(DomainError):
    """Raised by a storage backend that cannot serve a request (I/O, corruption, timeout)."""
    pass
