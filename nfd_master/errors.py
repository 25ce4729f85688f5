class NfdError(Exception):
    """Base class for all errors raised by the NFD master."""


class AuthorizationError(NfdError):
    """
    The transport identity of a request could not be bound to the node it
    claims to describe. The request must be rejected without any mutation.
    """


class ValidationError(NfdError):
    """A single reported value is malformed (e.g. a non-integer extended resource)."""

    def __init__(self, key: str, value: str, reason: str):
        super().__init__(f"invalid value {value!r} for {key!r}: {reason}")
        self.key = key
        self.value = value
        self.reason = reason


class StoreError(NfdError):
    """An object-store call (fetch, update, patch, create) failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NotFoundError(StoreError):
    """The requested object does not exist in the store."""


class ConflictError(StoreError):
    """The store rejected a write because the object changed since it was read."""
