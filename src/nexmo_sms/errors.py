from __future__ import annotations


class NexmoError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(NexmoError, ValueError):
    """Raised when an outbound request cannot be built from the given values."""
