"""Configuration: Lalamove credentials, application settings and store config."""

import logging
import math
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from delivery_dispatch.models import DeliveryStoreConfig

load_dotenv()

# Lalamove language tag per market code.
_MARKET_LANGUAGES = {
    "HK": "en_HK",
    "SG": "en_SG",
    "TH": "th_TH",
    "PH": "en_PH",
    "TW": "zh_TW",
    "MY": "ms_MY",
    "VN": "vi_VN",
}

DEFAULT_LANGUAGE = "en_US"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def language_for_market(market: str) -> str:
    """Return the Lalamove language tag for a market, falling back to en_US."""
    return _MARKET_LANGUAGES.get(market, DEFAULT_LANGUAGE)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _truthy(value: str | None, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LalamoveCredentials:
    """API key and secret used to sign every Lalamove request."""

    api_key: str
    api_secret: str

    @classmethod
    def from_env(cls) -> "LalamoveCredentials":
        api_key = os.getenv("LALAMOVE_API_KEY", "")
        api_secret = os.getenv("LALAMOVE_API_SECRET", "")
        if not api_key:
            raise ValueError("Missing env var LALAMOVE_API_KEY")
        if not api_secret:
            raise ValueError("Missing env var LALAMOVE_API_SECRET")
        return cls(api_key=api_key, api_secret=api_secret)

    @classmethod
    def from_settings(cls, settings: dict) -> "LalamoveCredentials | None":
        """Credentials stored in site settings, or None if either is blank."""
        api_key = settings.get("lalamove_api_key", "")
        api_secret = settings.get("lalamove_api_secret", "")
        if not api_key or not api_secret:
            return None
        return cls(api_key=api_key, api_secret=api_secret)


@dataclass(frozen=True)
class Settings:
    """Process-level settings, read once at startup."""

    database_url: str = "sqlite:///./delivery_dispatch.db"
    lalamove_timeout: float = 20.0
    dispatch_eager: bool = False
    broker_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            lalamove_timeout=float(os.getenv("LALAMOVE_TIMEOUT", cls.lalamove_timeout)),
            dispatch_eager=_truthy(os.getenv("DISPATCH_EAGER")),
            broker_url=os.getenv("REDIS_URL", cls.broker_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


def finite_float(value) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _make_store_config(
    market, service_type, sandbox, store_name, store_phone,
    store_address, store_latitude, store_longitude,
) -> DeliveryStoreConfig | None:
    market = str(market or "")
    service_type = str(service_type or "")
    store_name = str(store_name or "")
    store_phone = str(store_phone or "")
    store_address = str(store_address or "")
    lat = finite_float(store_latitude)
    lng = finite_float(store_longitude)

    if (
        not market
        or not service_type
        or not store_name
        or not store_phone
        or not store_address
        or lat is None
        or lng is None
    ):
        return None

    return DeliveryStoreConfig(
        market=market,
        service_type=service_type,
        sandbox=sandbox,
        store_name=store_name,
        store_phone=store_phone,
        store_address=store_address,
        store_latitude=lat,
        store_longitude=lng,
    )


def build_store_config(body: dict | None) -> DeliveryStoreConfig | None:
    """Build a store config from a storefront request body (camelCase keys).

    Returns None when any store field is missing or a coordinate is not a
    finite number.
    """
    if not body:
        return None
    return _make_store_config(
        body.get("market"),
        body.get("serviceType"),
        bool(body.get("sandbox")),
        body.get("storeName"),
        body.get("storePhone"),
        body.get("storeAddress"),
        body.get("storeLatitude"),
        body.get("storeLongitude"),
    )


def store_config_from_settings(settings: dict) -> DeliveryStoreConfig | None:
    """Build a store config from persisted ``lalamove_*`` site settings."""
    sandbox = str(settings.get("lalamove_sandbox", "true")).strip().lower() != "false"
    return _make_store_config(
        settings.get("lalamove_market"),
        settings.get("lalamove_service_type"),
        sandbox,
        settings.get("lalamove_store_name"),
        settings.get("lalamove_store_phone"),
        settings.get("lalamove_store_address"),
        settings.get("lalamove_store_latitude"),
        settings.get("lalamove_store_longitude"),
    )


def store_config_from_env(overrides: dict | None = None) -> DeliveryStoreConfig | None:
    """Build a store config from ``LALAMOVE_*`` environment variables.

    Non-empty values in ``overrides`` (keyed like the site settings) win
    over the environment.
    """
    keys = (
        "lalamove_market", "lalamove_service_type", "lalamove_sandbox",
        "lalamove_store_name", "lalamove_store_phone", "lalamove_store_address",
        "lalamove_store_latitude", "lalamove_store_longitude",
    )
    values = {key: os.getenv(key.upper(), "") for key in keys}
    values["lalamove_sandbox"] = values["lalamove_sandbox"] or "true"
    for key, value in (overrides or {}).items():
        if value is not None and value != "":
            values[key] = value
    return store_config_from_settings(values)
