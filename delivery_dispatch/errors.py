"""Error types raised by the quotation and delivery-order handlers."""


class DispatchError(Exception):
    """Base class for every failure that maps onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(DispatchError):
    """Missing or malformed input fields."""

    status_code = 400


class DomainError(DispatchError):
    """Business rule violation: expired quotation, stale schedule, missing stops."""

    status_code = 400


class OrderNotFound(DispatchError):
    status_code = 404


class UpstreamError(DispatchError):
    """Non-2xx, malformed or unreachable response from Lalamove.

    A 4xx from the upstream is passed through as-is; anything else is
    reported as a bad gateway.
    """

    def __init__(self, message: str, upstream_status: int = 502, body: str | None = None):
        status = upstream_status if 400 <= upstream_status < 500 else 502
        super().__init__(message, status_code=status)
        self.upstream_status = upstream_status
        self.body = body
