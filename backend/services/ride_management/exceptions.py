"""Custom exceptions for ride management."""


class RideError(Exception):
    """Base class for errors raised by the ride services layer."""
    pass


class RideNotFoundError(RideError):
    """Raised when a ride cannot be found."""
    pass


class RideConflictError(RideError):
    """
    Raised when a transition guard no longer holds at mutation time,
    e.g. a second driver claiming a ride that was just taken.
    """

    def __init__(self, message, current_status=None):
        super().__init__(message)
        self.current_status = current_status


class RideForbiddenError(RideError):
    """Raised when the caller does not own (or is not assigned to) the ride."""
    pass


class UpstreamError(RideError):
    """Raised when storage or an external collaborator fails."""
    pass


class RouteLookupError(UpstreamError):
    """Raised when the route lookup service cannot produce a route."""
    pass
