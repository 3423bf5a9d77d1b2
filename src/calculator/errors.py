"""
Washroom Quote - Estimate Errors

Raised synchronously by the estimator. None of these are transient, so
callers should never retry on them.
"""


class EstimateError(ValueError):
    """Base class for every error the estimator raises."""


class InvalidGeometryError(EstimateError):
    """A washroom dimension is zero, negative or not a number."""

    def __init__(self, field: str, value, message: str = None):
        self.field = field
        self.value = value
        super().__init__(message or f"Dimension '{field}' must be greater than 0 (got {value!r})")


class MissingSelectionError(EstimateError):
    """A selection the estimate depends on has not been made."""

    def __init__(self, selection: str):
        self.selection = selection
        super().__init__(f"Missing required selection: {selection}")


class ConfigurationError(EstimateError):
    """A rate or catalog value is negative or otherwise nonsensical."""
