from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from delivery_dispatch.base_client import CourierClient
from delivery_dispatch.db import Order, SiteSetting, init_db, make_engine, make_session_factory
from delivery_dispatch.models import DeliveryStoreConfig, UpstreamResult
from delivery_dispatch.tasks import dispatch_courier_order_task
from delivery_dispatch.worker import celery

NOW = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def eager_tasks():
    """Run Celery tasks in-process; no broker is available under test."""
    celery.conf.task_always_eager = True
    yield
    dispatch_courier_order_task.use()


def iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def quotation_envelope(
    quotation_id: str = "q-1",
    expires_at: datetime | None = None,
    schedule_at: datetime | None = None,
    stops: list[dict] | None = None,
) -> dict:
    data = {
        "quotationId": quotation_id,
        "priceBreakdown": {"total": "89.00", "currency": "PHP"},
        "expiresAt": iso(expires_at or NOW + timedelta(minutes=5)),
        "stops": stops if stops is not None else [
            {"stopId": "stop-sender", "address": "Store"},
            {"stopId": "stop-recipient", "address": "Customer"},
        ],
    }
    if schedule_at is not None:
        data["scheduleAt"] = iso(schedule_at)
    return {"data": data}


ORDER_ENVELOPE = {
    "data": {
        "orderId": "lm-order-1",
        "status": "ASSIGNING_DRIVER",
        "shareLink": "https://share.lalamove.com/lm-order-1",
        "driverId": None,
    }
}


class FakeCourierClient(CourierClient):
    """Records every call and answers with canned UpstreamResults."""

    def __init__(self, quotation=None, quote=None, order=None):
        self.quotation = quotation or UpstreamResult(ok=True, status=200, data=quotation_envelope())
        self.quote = quote or UpstreamResult(ok=True, status=201, data=quotation_envelope())
        self.order = order or UpstreamResult(ok=True, status=201, data=ORDER_ENVELOPE)
        self.calls: list[tuple[str, object, str, bool]] = []

    def request_quotation(self, payload, market, sandbox):
        self.calls.append(("POST /quotations", payload, market, sandbox))
        return self.quote

    def get_quotation(self, quotation_id, market, sandbox):
        self.calls.append(("GET /quotations", quotation_id, market, sandbox))
        return self.quotation

    def place_order(self, payload, market, sandbox):
        self.calls.append(("POST /orders", payload, market, sandbox))
        return self.order

    def calls_to(self, name: str) -> list:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture()
def store_config() -> DeliveryStoreConfig:
    return DeliveryStoreConfig(
        market="PH",
        service_type="MOTORCYCLE",
        sandbox=True,
        store_name="Beracah Cafe",
        store_phone="0917 123 4567",
        store_address="Manila City Hall, Manila, Philippines",
        store_latitude=14.599512,
        store_longitude=120.984222,
    )


@pytest.fixture()
def fake_client() -> FakeCourierClient:
    return FakeCourierClient()


STORE_SETTINGS = {
    "lalamove_market": "PH",
    "lalamove_service_type": "MOTORCYCLE",
    "lalamove_sandbox": "true",
    "lalamove_api_key": "pk_test",
    "lalamove_api_secret": "sk_test",
    "lalamove_store_name": "Beracah Cafe",
    "lalamove_store_phone": "09171234567",
    "lalamove_store_address": "Manila City Hall, Manila, Philippines",
    "lalamove_store_latitude": "14.599512",
    "lalamove_store_longitude": "120.984222",
}


@pytest.fixture()
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    init_db(engine)
    factory = make_session_factory(engine)
    with factory() as session:
        session.add_all(SiteSetting(id=k, value=v) for k, v in STORE_SETTINGS.items())
        session.commit()
    yield factory
    engine.dispose()


def make_order(session_factory, **overrides) -> str:
    values = dict(
        order_number="ORD-0001",
        customer_name="Juan Dela Cruz",
        contact_number="0918 765 4321",
        service_type="delivery",
        address="Glorietta 4, Makati, Philippines",
        status="pending",
        total=Decimal("350.00"),
        delivery_fee=Decimal("89.00"),
        lalamove_quotation_id="q-1",
    )
    values.update(overrides)
    with session_factory() as session:
        order = Order(**values)
        session.add(order)
        session.commit()
        return order.id
