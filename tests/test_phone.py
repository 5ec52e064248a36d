import pytest

from delivery_dispatch.phone import normalize_phone


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("09171234567", "+639171234567"),
        ("639171234567", "+639171234567"),
        ("9171234567", "+639171234567"),
        ("+639171234567", "+639171234567"),
        ("0917-123-4567", "+639171234567"),
        ("(0917) 123 4567", "+639171234567"),
        ("1234567", "+631234567"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["09171234567", "9171234567", "+63 917 123 4567", "0063917", "5551234", "0", "6"],
)
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert normalize_phone(once) == once


@pytest.mark.parametrize("raw", ["", "n/a", "+-()", None])
def test_inputs_without_digits_are_returned_unchanged(raw):
    assert normalize_phone(raw) == raw
