"""
Error types raised by the service layer.
The API maps them to HTTP status codes in main.py.
"""


class PricingError(Exception):
    """Base class for service errors."""

    status_code = 400
    error_code = "pricing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PricingError):
    """A referenced plan, rule or subscription does not exist."""

    status_code = 404
    error_code = "not_found"


class InvalidArgumentError(PricingError):
    """Input outside its allowed range (billing months, discount percentage...)."""

    status_code = 400
    error_code = "invalid_argument"


class ConflictError(PricingError):
    """The operation conflicts with existing records."""

    status_code = 409
    error_code = "conflict"
