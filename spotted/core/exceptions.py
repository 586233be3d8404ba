class SpottedError(Exception):
    """Base class for errors scoped to a single request."""


class AuthorizationDenied(SpottedError):
    """A visible row the requester may not mutate. Never carries a reason."""

    def __init__(self):
        super().__init__("Operation not permitted")


class RecordNotFound(SpottedError):
    def __init__(self, entity: str = "Record"):
        self.entity = entity
        super().__init__(f"{entity} not found")


class ValidationFailed(SpottedError):
    def __init__(self, field: str, message: str, code: str = "INVALID_FIELD"):
        self.field = field
        self.message = message
        self.code = code
        super().__init__(message)


class DuplicateAccount(ValidationFailed):
    def __init__(self, email: str):
        super().__init__(
            "email",
            f"The email address '{email}' is already registered",
            "DUPLICATE_FIELD",
        )


class StorageUnavailable(SpottedError):
    """Network, disk or quota failure; the caller may retry."""


class InvalidStateChange(SpottedError, ValueError):
    """A write the model's invariants refuse, such as an illegal status move."""
