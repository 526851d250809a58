import pytest

from config import ReconcilerConfig


def test_defaults(monkeypatch):
    for name in ("PAYMENT_API_URL", "INTENT_STORE_BACKEND", "INTENT_MAX_AGE_MINUTES", "CORS_ORIGINS", "ENV"):
        monkeypatch.delenv(name, raising=False)

    config = ReconcilerConfig.from_env()

    assert config.payment_api_url == "http://localhost:8080"
    assert config.intent_store_backend == "file"
    assert config.intent_max_age_minutes == 30
    assert config.cors_origins == ["*"]
    assert config.debug


def test_from_env(monkeypatch):
    monkeypatch.setenv("PAYMENT_API_URL", "https://api.shop.test")
    monkeypatch.setenv("PAYMENT_API_TOKEN", "tok")
    monkeypatch.setenv("PAYMENT_API_TIMEOUT", "2.5")
    monkeypatch.setenv("INTENT_STORE_BACKEND", "Memory")
    monkeypatch.setenv("INTENT_MAX_AGE_MINUTES", "0")
    monkeypatch.setenv("FRONTEND_URL", "https://shop.test/")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test")
    monkeypatch.setenv("ENV", "production")

    config = ReconcilerConfig.from_env()

    assert config.payment_api_token == "tok"
    assert config.payment_api_timeout == 2.5
    assert config.intent_store_backend == "memory"
    assert config.intent_max_age_minutes == 0
    assert config.frontend_url == "https://shop.test"
    assert config.cors_origins == ["https://a.test", "https://b.test"]
    assert not config.debug


@pytest.mark.parametrize("name, value", [
    ("INTENT_STORE_BACKEND", "redis"),
    ("INTENT_MAX_AGE_MINUTES", "-1"),
    ("PAYMENT_API_TIMEOUT", "soon"),
])
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        ReconcilerConfig.from_env()
