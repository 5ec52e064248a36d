"""Request bodies accepted by the HTTP routes."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from delivery_dispatch.db import OrderStatus


class LalamoveRequestIn(BaseModel):
    """Body of ``POST /api/lalamove/{action}``.

    Store fields (``market``, ``storeLatitude``...) are kept as extras and
    checked by build_store_config, so a bad store config gets its own error.
    """

    model_config = ConfigDict(extra="allow")

    # quote
    deliveryAddress: str | None = None
    deliveryLat: float | None = None
    deliveryLng: float | None = None

    # order
    quotationId: str | None = None
    recipientName: str | None = None
    recipientPhone: str | None = None
    recipientRemarks: str | None = None
    senderStopId: str | None = None
    recipientStopId: str | None = None
    metadata: dict[str, Any] | None = None


class OrderUpdateIn(BaseModel):
    """Body of ``PATCH /api/orders/{id}``; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    status: OrderStatus | None = None
    lalamove_order_id: str | None = None
    lalamove_status: str | None = None
    lalamove_tracking_url: str | None = None


# Error message for a request validation failure on a given body field.
FIELD_ERRORS = {
    "status": "Invalid status",
    "deliveryLat": "Missing delivery fields",
    "deliveryLng": "Missing delivery fields",
}
