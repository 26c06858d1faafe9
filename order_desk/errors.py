"""
Error types raised at the order desk boundary.

The API layer maps each of these to an HTTP status code; nothing here is
retried automatically.
"""


class OrderDeskError(Exception):
    """Base class for all order desk failures."""


class EmptyInputError(OrderDeskError):
    """Submitted text or image was empty or unusable; the gateway was not called."""


class ExtractionError(OrderDeskError):
    """The extraction gateway failed. Carries one generic user-facing message."""

    GENERIC_MESSAGE = "Failed to process data. Please check your input and try again."

    def __init__(self, message: str = GENERIC_MESSAGE):
        super().__init__(message)


class ExtractionInProgressError(OrderDeskError):
    """A new extraction was requested while another is outstanding."""


class OrderNotFoundError(OrderDeskError):
    """The order id is present on neither the current batch nor the history."""


class MissingCancelReasonError(OrderDeskError):
    """Cancellation requested without a usable reason."""


class OrderLockedError(OrderDeskError):
    """Field edit attempted on a delivered order."""


class EmptyExportError(OrderDeskError):
    """Export requested for a view with no orders."""
