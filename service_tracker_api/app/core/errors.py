"""
Domain exceptions raised by the service layer.

Services never raise ``HTTPException`` themselves; endpoint handlers
catch these errors and translate them into the matching HTTP status
code.  No error here is fatal: every failure leaves the caller in a
state from which the action can be retried.
"""


class ServiceTrackerError(Exception):
    """Base class for all service tracker errors."""


class ValidationError(ServiceTrackerError):
    """Input rejected before any call to the record store (empty title, negative price)."""


class AuthorizationError(ServiceTrackerError):
    """Caller lacks the capability required for an action."""


class NotFoundError(ServiceTrackerError):
    """The referenced service record does not exist."""


class ConflictError(ServiceTrackerError):
    """The record changed since the caller last read it (version mismatch)."""


class RemoteError(ServiceTrackerError):
    """A call to the record store failed."""
