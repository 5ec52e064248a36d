from datetime import datetime, timezone
from decimal import Decimal

import pytest

from delivery_dispatch.errors import UpstreamError
from delivery_dispatch.models import Quotation, UpstreamResult, parse_timestamp


def test_parse_timestamp_accepts_zulu_suffix():
    assert parse_timestamp("2025-09-01T12:00:00.000Z") == datetime(2025, 9, 1, 12, tzinfo=timezone.utc)


def test_parse_timestamp_treats_naive_values_as_utc():
    assert parse_timestamp("2025-09-01T12:00:00").tzinfo == timezone.utc


def test_parse_timestamp_empty():
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None


def test_quotation_from_data():
    quotation = Quotation.from_data(
        {
            "quotationId": "q-1",
            "priceBreakdown": {"total": "89.00", "currency": "PHP"},
            "expiresAt": "2025-09-01T12:05:00.000Z",
            "stops": [
                {"stopId": "s-1", "coordinates": {"lat": "14.5", "lng": "120.9"}, "address": "Store"},
                {"id": "s-2", "address": "Customer"},
            ],
        }
    )

    assert quotation.price == Decimal("89.00")
    assert quotation.schedule_at is None
    assert [stop.stop_id for stop in quotation.stops] == ["s-1", "s-2"]
    assert quotation.stops[0].coordinates.lat == "14.5"
    assert quotation.stops[1].coordinates is None


def test_successful_result_returns_body():
    assert UpstreamResult(ok=True, status=200, data={"data": {}}).raise_for_error() == {"data": {}}


def test_failed_result_raises_with_prefix():
    result = UpstreamResult(ok=False, status=404, error="not found")

    with pytest.raises(UpstreamError, match="^Failed: not found$"):
        result.raise_for_error(prefix="Failed: ")


def test_quotation_rejects_non_object_stops():
    with pytest.raises(UpstreamError, match="stop is not an object"):
        Quotation.from_data({"quotationId": "q-1", "stops": ["stop-sender"]})


def test_quotation_rejects_string_price_breakdown():
    with pytest.raises(UpstreamError, match="priceBreakdown is not an object") as excinfo:
        Quotation.from_data({"quotationId": "q-1", "priceBreakdown": "89.00"})

    assert excinfo.value.status_code == 502
