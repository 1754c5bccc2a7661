"""
Exceptions raised while running a window cycle.
"""


class KwhFilterError(Exception):
    """Base class for all kwh_filter errors."""


class ValidationError(KwhFilterError):
    """Missing or inconsistent date/time input. The cycle never starts."""


class TransportError(KwhFilterError):
    """A single remote call failed (network, authorization, status or body)."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class UnexpectedError(KwhFilterError):
    """Any other failure inside a cycle."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause
