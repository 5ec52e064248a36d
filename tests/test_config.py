import pytest

from delivery_dispatch.config import (
    LalamoveCredentials,
    Settings,
    build_store_config,
    language_for_market,
    store_config_from_env,
    store_config_from_settings,
)

BODY = {
    "market": "PH",
    "serviceType": "MOTORCYCLE",
    "sandbox": True,
    "storeName": "Beracah Cafe",
    "storePhone": "09171234567",
    "storeAddress": "Manila City Hall",
    "storeLatitude": "14.599512",
    "storeLongitude": 120.984222,
}


@pytest.mark.parametrize(
    "market, language",
    [
        ("HK", "en_HK"),
        ("SG", "en_SG"),
        ("TH", "th_TH"),
        ("PH", "en_PH"),
        ("TW", "zh_TW"),
        ("MY", "ms_MY"),
        ("VN", "vi_VN"),
        ("ZZ", "en_US"),
        ("", "en_US"),
    ],
)
def test_language_for_market(market, language):
    assert language_for_market(market) == language


class TestBuildStoreConfig:
    def test_builds_config_from_request_body(self):
        config = build_store_config(BODY)

        assert config.market == "PH"
        assert config.service_type == "MOTORCYCLE"
        assert config.sandbox is True
        assert config.store_latitude == pytest.approx(14.599512)
        assert config.store_longitude == pytest.approx(120.984222)

    def test_sandbox_defaults_to_false_in_request_body(self):
        body = {k: v for k, v in BODY.items() if k != "sandbox"}
        assert build_store_config(body).sandbox is False

    @pytest.mark.parametrize(
        "field", ["market", "serviceType", "storeName", "storePhone", "storeAddress"]
    )
    def test_rejects_missing_field(self, field):
        assert build_store_config({**BODY, field: ""}) is None

    @pytest.mark.parametrize("value", ["abc", "nan", None, "inf"])
    def test_rejects_non_finite_coordinates(self, value):
        assert build_store_config({**BODY, "storeLatitude": value}) is None

    def test_rejects_empty_body(self):
        assert build_store_config(None) is None
        assert build_store_config({}) is None


class TestStoreConfigFromSettings:
    SETTINGS = {
        "lalamove_market": "PH",
        "lalamove_service_type": "MOTORCYCLE",
        "lalamove_store_name": "Beracah Cafe",
        "lalamove_store_phone": "09171234567",
        "lalamove_store_address": "Manila City Hall",
        "lalamove_store_latitude": "14.599512",
        "lalamove_store_longitude": "120.984222",
    }

    def test_sandbox_is_on_unless_explicitly_false(self):
        assert store_config_from_settings(self.SETTINGS).sandbox is True
        assert store_config_from_settings({**self.SETTINGS, "lalamove_sandbox": "true"}).sandbox is True
        assert store_config_from_settings({**self.SETTINGS, "lalamove_sandbox": "FALSE"}).sandbox is False

    def test_blank_coordinates_are_rejected(self):
        assert store_config_from_settings({**self.SETTINGS, "lalamove_store_latitude": ""}) is None

    def test_env_values_are_overridden_by_non_empty_overrides(self, monkeypatch):
        for key, value in self.SETTINGS.items():
            monkeypatch.setenv(key.upper(), value)
        monkeypatch.delenv("LALAMOVE_SANDBOX", raising=False)

        config = store_config_from_env({"lalamove_market": "SG", "lalamove_store_name": None})

        assert config.market == "SG"
        assert config.store_name == "Beracah Cafe"
        assert config.sandbox is True


class TestCredentials:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LALAMOVE_API_KEY", "pk_test")
        monkeypatch.setenv("LALAMOVE_API_SECRET", "sk_test")

        assert LalamoveCredentials.from_env() == LalamoveCredentials("pk_test", "sk_test")

    def test_missing_env_names_the_variable(self, monkeypatch):
        monkeypatch.setenv("LALAMOVE_API_KEY", "pk_test")
        monkeypatch.delenv("LALAMOVE_API_SECRET", raising=False)

        with pytest.raises(ValueError, match="LALAMOVE_API_SECRET"):
            LalamoveCredentials.from_env()

    def test_from_settings_requires_both(self):
        assert LalamoveCredentials.from_settings({"lalamove_api_key": "pk"}) is None
        creds = LalamoveCredentials.from_settings(
            {"lalamove_api_key": "pk", "lalamove_api_secret": "sk"}
        )
        assert creds == LalamoveCredentials("pk", "sk")


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("LALAMOVE_TIMEOUT", "12.5")
    monkeypatch.setenv("DISPATCH_EAGER", "1")
    monkeypatch.delenv("REDIS_URL", raising=False)

    settings = Settings.from_env()

    assert settings.database_url == "sqlite:///:memory:"
    assert settings.lalamove_timeout == 12.5
    assert settings.dispatch_eager is True
    assert settings.broker_url == "redis://localhost:6379/0"
