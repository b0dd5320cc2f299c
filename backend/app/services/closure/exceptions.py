"""
Campaign Closure - Exceptions

Routers translate these into HTTP status codes. Everything else that
escapes the closure service is a bug.
"""


class ClosureServiceError(Exception):
    """Base class for closure failures surfaced to the caller."""
    pass


class ValidationError(ClosureServiceError):
    """Bad input, e.g. a manual closure without a long enough reason."""
    pass


class InvalidStateError(ClosureServiceError):
    """Campaign is not in a closable status."""
    pass


class AlreadyClosedError(ClosureServiceError):
    """Campaign already has a closure report."""
    pass


class NotFoundError(ClosureServiceError):
    """Campaign or closure report does not exist."""
    pass


class DependencyError(ClosureServiceError):
    """A hard dependency (organizer, donations, receipts, activities) failed."""
    pass
