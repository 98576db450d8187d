"""Custom exceptions for the dealmatch application."""


class DealMatchException(Exception):
    """Base exception for dealmatch application."""

    pass


class ValidationError(DealMatchException):
    """Raised when validation fails."""

    pass


class NotFoundError(DealMatchException):
    """Raised when a resource is not found."""

    pass


class ConfigurationError(DealMatchException):
    """Raised when configuration is invalid."""

    pass


class ResolutionSetupError(DealMatchException):
    """Raised before a batch starts when its prerequisites are not in place.

    This is the only fatal error of a resolution run; everything that goes wrong
    for a single deal is recovered at the record boundary instead.
    """

    pass


class ReviewStateError(DealMatchException):
    """Raised when a review action does not apply to the record's current status."""

    pass
