"""Exceptions raised by user management operations."""

from src.user_service.core.services.user.validation import ValidationResult


class UserServiceError(Exception):
    """Base exception for all user management operations."""
    pass


class BadRequestError(UserServiceError):
    """Request is malformed independently of the store's contents."""
    pass


class UserValidationError(UserServiceError):
    """One or more field errors block the operation.

    Attributes:
        result: The per-field validation messages
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.summary())


class MemberNotFoundError(UserServiceError):
    """The referenced member organization does not exist."""

    def __init__(self, salesforce_id: str):
        self.salesforce_id = salesforce_id
        super().__init__(f"member not found: {salesforce_id}")


class UserNotFoundError(UserServiceError):
    """No active user with the given id."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"not found: {user_id}")


class ConflictError(UserServiceError):
    """The store rejected a write because login or email is already held."""
    pass


class CsvParseError(UserServiceError):
    """A CSV row cannot be turned into a user record."""
    pass


class MemberDirectoryError(UserServiceError):
    """The member directory could not answer (timeout, transport or server error)."""
    pass
