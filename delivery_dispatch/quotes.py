"""Delivery quotation requests for a store-to-customer trip."""

import logging

from delivery_dispatch.base_client import CourierClient
from delivery_dispatch.config import finite_float, language_for_market
from delivery_dispatch.errors import ValidationError
from delivery_dispatch.models import DeliveryStoreConfig, Quote, expect_object

logger = logging.getLogger("delivery_dispatch.quotes")

# Every order from the storefront is a small food parcel.
ITEM = {
    "quantity": "1",
    "weight": "LESS_THAN_3_KG",
    "categories": ["FOOD_DELIVERY"],
    "handlingInstructions": ["KEEP_UPRIGHT"],
}


def build_stops(
    config: DeliveryStoreConfig,
    delivery_address: str,
    delivery_lat: float,
    delivery_lng: float,
) -> list[dict]:
    """Return the origin (store) and destination stops, in that order."""
    return [
        {
            "coordinates": {
                "lat": str(config.store_latitude),
                "lng": str(config.store_longitude),
            },
            "address": config.store_address,
        },
        {
            "coordinates": {
                "lat": str(delivery_lat),
                "lng": str(delivery_lng),
            },
            "address": delivery_address,
        },
    ]


def build_quotation_payload(
    config: DeliveryStoreConfig,
    delivery_address: str,
    delivery_lat: float,
    delivery_lng: float,
) -> dict:
    return {
        "data": {
            "serviceType": config.service_type,
            "language": language_for_market(config.market),
            "stops": build_stops(config, delivery_address, delivery_lat, delivery_lng),
            "item": dict(ITEM),
        }
    }


def get_quote(
    client: CourierClient,
    config: DeliveryStoreConfig,
    delivery_address: str,
    delivery_lat,
    delivery_lng,
) -> Quote:
    """Request a quotation from the store to a delivery address.

    Raises:
        ValidationError: the address is empty or a coordinate is not a
            finite number. No request is made in that case.
        UpstreamError: Lalamove rejected the request or returned garbage.
    """
    lat = finite_float(delivery_lat)
    lng = finite_float(delivery_lng)
    if not delivery_address or lat is None or lng is None:
        raise ValidationError("Missing delivery fields")

    payload = build_quotation_payload(config, delivery_address, lat, lng)
    result = client.request_quotation(payload, config.market, config.sandbox)
    data = expect_object(result.raise_for_error().get("data"), "quotation data")
    breakdown = expect_object(data.get("priceBreakdown"), "priceBreakdown")

    quote = Quote(
        quotation_id=data.get("quotationId"),
        price=breakdown.get("total"),
        currency=breakdown.get("currency"),
        expires_at=data.get("expiresAt"),
    )
    logger.info(
        "Quotation %s: %s %s (expires %s)",
        quote.quotation_id, quote.price, quote.currency, quote.expires_at,
    )
    return quote
