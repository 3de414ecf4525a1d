"""
Booking engine exceptions.

Raised by the services layer and translated into HTTP responses by the routers.
An empty slot list (day off, no hours defined) is a normal result, not an error.
"""


class BookingError(Exception):
    """Base exception for booking engine failures."""


class ResolutionFailure(BookingError):
    """The store could not be queried while resolving hours or appointments."""


class SlotConflict(BookingError, ValueError):
    """The requested start time is not a currently free slot."""


class ConcurrentConflictDetected(SlotConflict):
    """The store rejected the insert because another booking won the race."""


class OperationTimeout(BookingError, TimeoutError):
    """The operation did not finish before its deadline."""


class AppointmentNotFound(BookingError, LookupError):
    pass
