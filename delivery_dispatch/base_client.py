"""Abstract base class for courier aggregator clients."""

from abc import ABC, abstractmethod

from delivery_dispatch.models import UpstreamResult


class CourierClient(ABC):
    """Base class that every courier client (and test fake) must implement."""

    @abstractmethod
    def request_quotation(self, payload: dict, market: str, sandbox: bool) -> UpstreamResult:
        """Request a new delivery quotation.

        Args:
            payload: Quotation request body (``{"data": {...}}``).
            market: Market code sent in the ``Market`` header.
            sandbox: Whether to use the sandbox host.

        Returns:
            UpstreamResult carrying the quotation envelope on success.
        """

    @abstractmethod
    def get_quotation(self, quotation_id: str, market: str, sandbox: bool) -> UpstreamResult:
        """Fetch an existing quotation by ID.

        Args:
            quotation_id: Quotation ID returned by request_quotation().
            market: Market code sent in the ``Market`` header.
            sandbox: Whether to use the sandbox host.

        Returns:
            UpstreamResult carrying the quotation envelope on success.
        """

    @abstractmethod
    def place_order(self, payload: dict, market: str, sandbox: bool) -> UpstreamResult:
        """Create a delivery order from a quotation.

        Args:
            payload: Order request body (``{"data": {...}}``).
            market: Market code sent in the ``Market`` header.
            sandbox: Whether to use the sandbox host.

        Returns:
            UpstreamResult carrying the order envelope on success.
        """
