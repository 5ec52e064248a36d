"""Order reads and updates, and the courier dispatch fired on confirmation."""

import logging
from typing import Any, Callable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from delivery_dispatch.base_client import CourierClient
from delivery_dispatch.config import LalamoveCredentials, store_config_from_settings
from delivery_dispatch.db import ORDER_STATUSES, Order, SiteSetting
from delivery_dispatch.delivery_orders import create_order
from delivery_dispatch.errors import DispatchError, OrderNotFound, ValidationError
from delivery_dispatch.phone import normalize_phone

logger = logging.getLogger("delivery_dispatch.order_service")

UPDATABLE_FIELDS = ("status", "lalamove_order_id", "lalamove_status", "lalamove_tracking_url")

SETTING_DEFAULTS = {
    "site_name": "Beracah Cafe",
    "site_logo": "",
    "site_description": "",
    "currency": "PHP",
    "currency_code": "PHP",
    "lalamove_market": "",
    "lalamove_service_type": "",
    "lalamove_sandbox": "true",
    "lalamove_api_key": "",
    "lalamove_api_secret": "",
    "lalamove_store_name": "",
    "lalamove_store_phone": "",
    "lalamove_store_address": "",
    "lalamove_store_latitude": "",
    "lalamove_store_longitude": "",
}

# Builds a courier client from the credentials stored in site settings.
ClientFactory = Callable[[LalamoveCredentials], CourierClient]


def get_site_settings(session: Session) -> dict[str, str]:
    rows = session.execute(select(SiteSetting).order_by(SiteSetting.id)).scalars()
    settings = dict(SETTING_DEFAULTS)
    settings.update({row.id: row.value for row in rows})
    return settings


def get_order(session: Session, order_id: str) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise OrderNotFound("Order not found")
    return order


def _should_dispatch(current: Order, new_status: str | None) -> bool:
    return (
        new_status == "confirmed"
        and current.status != "confirmed"
        and current.service_type == "delivery"
        and bool(current.lalamove_quotation_id)
        and not current.lalamove_order_id
    )


def update_order(
    session: Session,
    order_id: str,
    changes: dict[str, Any],
    dispatch: Callable[[str], Any] | None = None,
) -> Order:
    """Apply a status / Lalamove field update to an order.

    When the update confirms a delivery order that has a quotation but no
    courier order yet, ``dispatch(order_id)`` is called after the commit.
    It is expected to hand the work off and return immediately.

    Two concurrent confirmations can both pass the "no courier order yet"
    check; the write-back in dispatch_courier_order is conditional so only
    the first courier order id is kept, but both courier orders exist
    upstream.
    """
    if not order_id:
        raise ValidationError("Order ID is required")

    update_data = {k: changes[k] for k in UPDATABLE_FIELDS if k in changes}
    status = update_data.get("status")
    if "status" in update_data and status not in ORDER_STATUSES:
        raise ValidationError("Invalid status")
    if not update_data:
        raise ValidationError("No fields to update")

    order = get_order(session, order_id)
    confirm_delivery = _should_dispatch(order, status)

    for key, value in update_data.items():
        setattr(order, key, value)
    session.commit()
    session.refresh(order)
    logger.info("Order %s updated: %s", order.order_number, sorted(update_data))

    if confirm_delivery and dispatch is not None:
        logger.info(
            "Order %s confirmed for delivery; dispatching quotation %s",
            order.order_number, order.lalamove_quotation_id,
        )
        dispatch(order.id)

    return order


def dispatch_courier_order(
    session_factory: sessionmaker[Session],
    client_factory: ClientFactory,
    order_id: str,
) -> str | None:
    """Create the Lalamove order for a confirmed order and record it.

    Runs detached from the request that confirmed the order. Any failure
    is logged and the order is left confirmed with no courier order for
    an operator to retry. No session is held open while Lalamove is
    being called.

    Returns:
        The courier order id, or None if nothing was created.
    """
    with session_factory() as session:
        order = session.get(Order, order_id)
        if order is None:
            logger.warning("Order %s vanished before courier dispatch", order_id)
            return None
        if order.lalamove_order_id:
            logger.info(
                "Order %s already has courier order %s; skipping",
                order.order_number, order.lalamove_order_id,
            )
            return None
        if not order.lalamove_quotation_id:
            return None
        settings = get_site_settings(session)

    config = store_config_from_settings(settings)
    credentials = LalamoveCredentials.from_settings(settings)
    if config is None or credentials is None:
        logger.warning(
            "Lalamove is not configured; order %s was not dispatched", order.order_number,
        )
        return None

    quotation_id = order.lalamove_quotation_id
    try:
        courier_order = create_order(
            client_factory(credentials),
            config,
            quotation_id,
            order.customer_name,
            normalize_phone(order.contact_number) or order.contact_number,
            metadata={"orderId": order.id},
        )
    except DispatchError as exc:
        logger.error(
            "Failed to create Lalamove order for order %s (quotation %s): %s",
            order.order_number, quotation_id, exc.message,
        )
        return None

    if not courier_order.order_id:
        logger.error(
            "Lalamove returned no order id for order %s (quotation %s)",
            order.order_number, quotation_id,
        )
        return None

    with session_factory() as session:
        result = session.execute(
            update(Order)
            .where(Order.id == order_id, Order.lalamove_order_id.is_(None))
            .values(
                lalamove_order_id=courier_order.order_id,
                lalamove_status=courier_order.status,
                lalamove_tracking_url=courier_order.share_link,
            )
        )
        session.commit()
    if result.rowcount == 0:
        logger.warning(
            "Order %s already had a courier order; Lalamove order %s was not recorded",
            order.order_number, courier_order.order_id,
        )
        return None

    logger.info(
        "Lalamove order created automatically for order %s: %s",
        order.order_number, courier_order.order_id,
    )
    return courier_order.order_id
