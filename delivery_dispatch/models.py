"""Shared data models for Lalamove quotations and delivery orders."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from delivery_dispatch.errors import UpstreamError


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by Lalamove (``...Z`` allowed)."""
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def expect_object(value, what: str) -> dict:
    """Return a JSON object from an upstream body; None reads as empty.

    Raises:
        UpstreamError: ``value`` is present but not an object.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise UpstreamError(f"Malformed upstream response: {what} is not an object")
    return value


def _decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


@dataclass(frozen=True)
class DeliveryStoreConfig:
    """Store origin and courier settings for a single request."""

    market: str
    service_type: str
    sandbox: bool
    store_name: str
    store_phone: str
    store_address: str
    store_latitude: float
    store_longitude: float


@dataclass
class Coordinates:
    lat: str
    lng: str


@dataclass
class Stop:
    """One waypoint of a quotation."""

    stop_id: str | None
    address: str
    coordinates: Coordinates | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Stop":
        data = expect_object(data, "stop")
        coords = expect_object(data.get("coordinates"), "stop coordinates")
        return cls(
            stop_id=data.get("stopId") or data.get("id") or None,
            address=data.get("address", ""),
            coordinates=Coordinates(lat=coords.get("lat", ""), lng=coords.get("lng", ""))
            if coords else None,
        )


@dataclass
class Quotation:
    """A priced, time-bounded offer returned by the aggregator."""

    quotation_id: str | None
    price: Decimal | None
    currency: str | None
    expires_at: datetime | None
    schedule_at: datetime | None
    schedule_at_raw: str | None = None
    expires_at_raw: str | None = None
    stops: list[Stop] = field(default_factory=list)

    @classmethod
    def from_data(cls, data: dict) -> "Quotation":
        """Build a Quotation from the ``data`` object of a quotation envelope."""
        data = expect_object(data, "quotation data")
        breakdown = expect_object(data.get("priceBreakdown"), "priceBreakdown")
        stops = data.get("stops") or []
        if not isinstance(stops, list):
            raise UpstreamError("Malformed upstream response: stops is not a list")
        return cls(
            quotation_id=data.get("quotationId"),
            price=_decimal(breakdown.get("total")),
            currency=breakdown.get("currency"),
            expires_at=parse_timestamp(data.get("expiresAt")),
            schedule_at=parse_timestamp(data.get("scheduleAt")),
            schedule_at_raw=data.get("scheduleAt"),
            expires_at_raw=data.get("expiresAt"),
            stops=[Stop.from_dict(s) for s in stops],
        )


@dataclass
class Quote:
    """Normalized quotation summary handed back to the storefront."""

    quotation_id: str | None
    price: str | None
    currency: str | None
    expires_at: str | None

    def to_dict(self) -> dict:
        return {
            "quotationId": self.quotation_id,
            "price": self.price,
            "currency": self.currency,
            "expiresAt": self.expires_at,
        }


@dataclass
class CourierOrder:
    """Aggregator-side delivery job created from a quotation."""

    order_id: str | None
    status: str | None
    share_link: str | None
    driver_id: str | None

    def to_dict(self) -> dict:
        return {
            "orderId": self.order_id,
            "status": self.status,
            "shareLink": self.share_link,
            "driverId": self.driver_id,
        }


@dataclass
class UpstreamResult:
    """Outcome of one call to the aggregator; never raised past the client."""

    ok: bool
    status: int
    data: dict | None = None
    error: str | None = None

    def raise_for_error(self, prefix: str = "") -> dict:
        """Return the parsed body, or raise UpstreamError for a failed call."""
        if self.ok:
            return self.data or {}
        message = f"{prefix}{self.error}" if prefix else (self.error or "")
        raise UpstreamError(message, upstream_status=self.status, body=self.error)
