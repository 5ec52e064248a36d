"""Delivery order placement: quotation checks, stop resolution and submission."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from delivery_dispatch.base_client import CourierClient
from delivery_dispatch.errors import DomainError, ValidationError
from delivery_dispatch.models import CourierOrder, DeliveryStoreConfig, Quotation, expect_object
from delivery_dispatch.phone import normalize_phone

logger = logging.getLogger("delivery_dispatch.orders")

# A schedule this far in the past is still delivered immediately.
SCHEDULE_PAST_TOLERANCE = timedelta(minutes=10)
SCHEDULE_FAR_FUTURE = timedelta(hours=24)


@dataclass
class ResolvedStops:
    sender_stop_id: str
    recipient_stop_id: str
    schedule_at: str | None = None


def _check_schedule(quotation: Quotation, now: datetime) -> str | None:
    """Return the scheduleAt value to forward, or None for immediate delivery."""
    schedule_at = quotation.schedule_at
    if schedule_at is None:
        return None

    delta = schedule_at - now
    if delta < timedelta(0):
        minutes_past = -delta.total_seconds() / 60
        if -delta <= SCHEDULE_PAST_TOLERANCE:
            logger.warning(
                "Quotation %s schedule %s passed %.2f minutes ago; delivering immediately",
                quotation.quotation_id, quotation.schedule_at_raw, minutes_past,
            )
            return None
        logger.error(
            "Quotation %s schedule %s is %.2f minutes in the past",
            quotation.quotation_id, quotation.schedule_at_raw, minutes_past,
        )
        raise DomainError(
            f"Quotation schedule time ({quotation.schedule_at_raw}) is too far in the past "
            f"({minutes_past:.0f} minutes). Please request a new quotation for immediate delivery."
        )

    hours_until = delta.total_seconds() / 3600
    if delta > SCHEDULE_FAR_FUTURE:
        logger.warning(
            "Quotation %s schedule %s is %.2f hours away",
            quotation.quotation_id, quotation.schedule_at_raw, hours_until,
        )
    logger.info(
        "Using scheduled quotation %s at %s (%.2f hours from now)",
        quotation.quotation_id, quotation.schedule_at_raw, hours_until,
    )
    return quotation.schedule_at_raw


def resolve_stops(
    client: CourierClient,
    config: DeliveryStoreConfig,
    quotation_id: str,
    now: datetime | None = None,
) -> ResolvedStops:
    """Fetch a quotation and pull out its stop IDs and usable schedule.

    Raises:
        UpstreamError: the quotation could not be fetched or is not shaped
            like a quotation.
        DomainError: the quotation has expired, its schedule is stale, or
            it carries no stop IDs.
    """
    now = now or datetime.now(timezone.utc)
    result = client.get_quotation(quotation_id, config.market, config.sandbox)
    body = result.raise_for_error(prefix="Failed to fetch quotation: ")
    data = expect_object(body.get("data") or body, "quotation data")

    try:
        quotation = Quotation.from_data(data)
    except ValueError as exc:
        raise DomainError(f"Quotation {quotation_id} has a malformed timestamp: {exc}") from exc
    if quotation.quotation_id is None:
        quotation.quotation_id = quotation_id

    if quotation.expires_at is not None and now > quotation.expires_at:
        logger.error(
            "Quotation %s expired at %s (now %s)",
            quotation_id, quotation.expires_at_raw, now.isoformat(),
        )
        raise DomainError(
            f"Quotation has expired. Expired at {quotation.expires_at_raw}. "
            "Please request a new quotation."
        )

    schedule_at = _check_schedule(quotation, now)

    stops = quotation.stops
    sender_stop_id = stops[0].stop_id if len(stops) > 0 else None
    recipient_stop_id = stops[1].stop_id if len(stops) > 1 else None
    if not sender_stop_id or not recipient_stop_id:
        logger.error("Missing stop IDs in quotation %s: %s", quotation_id, data.get("stops"))
        raise DomainError(
            "Failed to extract stop IDs from quotation. "
            "Please check quotation response structure.",
            status_code=500,
        )

    return ResolvedStops(sender_stop_id, recipient_stop_id, schedule_at)


def build_order_payload(
    config: DeliveryStoreConfig,
    quotation_id: str,
    stops: ResolvedStops,
    recipient_name: str,
    recipient_phone: str,
    remarks: str = "",
    metadata: dict | None = None,
) -> dict:
    data = {
        "quotationId": quotation_id,
        "sender": {
            "stopId": stops.sender_stop_id,
            "name": config.store_name,
            "phone": normalize_phone(config.store_phone),
        },
        "recipients": [
            {
                "stopId": stops.recipient_stop_id,
                "name": recipient_name,
                "phone": normalize_phone(recipient_phone),
                "remarks": remarks or "",
            }
        ],
        "isPODEnabled": True,
        "metadata": metadata or {},
    }
    if stops.schedule_at:
        data["scheduleAt"] = stops.schedule_at
    return {"data": data}


def create_order(
    client: CourierClient,
    config: DeliveryStoreConfig,
    quotation_id: str,
    recipient_name: str,
    recipient_phone: str,
    sender_stop_id: str | None = None,
    recipient_stop_id: str | None = None,
    remarks: str = "",
    metadata: dict | None = None,
    now: datetime | None = None,
) -> CourierOrder:
    """Place a Lalamove delivery order for an accepted quotation.

    When either stop ID is missing the quotation is fetched first, which
    also validates its expiry and schedule. Nothing is retried; on any
    failure the caller must obtain a fresh quotation or try again.

    Args:
        client: Courier client used for the upstream calls.
        config: Store (sender) configuration.
        quotation_id: Quotation to accept.
        recipient_name: Customer name.
        recipient_phone: Customer phone, in any local format.
        sender_stop_id: Stop ID of the store, if already known.
        recipient_stop_id: Stop ID of the customer, if already known.
        remarks: Free-text note for the driver.
        metadata: Opaque metadata stored on the courier order.
        now: Current time, for testing.

    Returns:
        The created CourierOrder.

    Raises:
        ValidationError: a required field is empty.
        DomainError: the quotation is expired, stale or lacks stop IDs.
        UpstreamError: Lalamove rejected a request.
    """
    if not quotation_id or not recipient_name or not recipient_phone:
        raise ValidationError("Missing order fields")

    if sender_stop_id and recipient_stop_id:
        stops = ResolvedStops(sender_stop_id, recipient_stop_id)
    else:
        stops = resolve_stops(client, config, quotation_id, now=now)

    payload = build_order_payload(
        config, quotation_id, stops, recipient_name, recipient_phone,
        remarks=remarks, metadata=metadata,
    )
    logger.info(
        "Placing Lalamove order for quotation %s (sender stop %s, recipient stop %s)",
        quotation_id, stops.sender_stop_id, stops.recipient_stop_id,
    )

    result = client.place_order(payload, config.market, config.sandbox)
    data = expect_object(result.raise_for_error().get("data"), "order data")
    return CourierOrder(
        order_id=data.get("orderId"),
        status=data.get("status"),
        share_link=data.get("shareLink"),
        driver_id=data.get("driverId"),
    )
