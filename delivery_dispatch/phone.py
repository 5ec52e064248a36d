"""Phone number normalization for the Lalamove API (E.164, country code 63)."""

import re

COUNTRY_CODE = "63"

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str | None) -> str | None:
    """Normalize a Philippine phone number to ``+63XXXXXXXXXX``.

    Accepts local numbers with a trunk prefix (``0917...``), bare
    subscriber numbers (``917...``) and numbers already carrying the
    country code (``63917...`` or ``+63917...``). Any other leading digit
    is prefixed with ``+63`` as-is; the result is not checked against a
    numbering plan.

    An input with no digits at all is returned unchanged.
    """
    if not phone:
        return phone

    digits = _NON_DIGITS.sub("", phone)
    if not digits:
        return phone

    if digits.startswith(COUNTRY_CODE):
        return f"+{digits}"
    if digits.startswith("0"):
        return f"+{COUNTRY_CODE}{digits[1:]}"
    return f"+{COUNTRY_CODE}{digits}"
