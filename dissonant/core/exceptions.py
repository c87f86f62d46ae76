"""Exception hierarchy for the order backend."""


class DissonantError(Exception):
    """Base class for errors raised by this package."""


class RetryExhaustedError(DissonantError):
    """An outbound call failed on every attempt."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{operation} failed after {attempts} attempts: {last_error}")


class AddressParseError(DissonantError):
    """An order's free-text address could not be split into label fields."""


class CustomerResolutionError(DissonantError):
    """No customer email could be found for an order."""


class LabelServiceError(DissonantError):
    """The label-creation endpoint returned an error or an unsuccessful body."""


class TrackingLookupError(DissonantError):
    """The courier tracking API could not return a status."""
