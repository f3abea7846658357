class PaymentTrackerError(Exception):
    """Base class for all errors raised by the payment tracker services."""


class ValidationError(PaymentTrackerError, ValueError):
    pass


class NotFoundError(ValidationError):
    pass


class ConcurrentUpdateError(PaymentTrackerError):
    """A payment record changed between read and write; retry the operation."""
