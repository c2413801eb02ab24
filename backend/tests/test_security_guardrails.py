import pytest

from core import config as config_module


def _reset_settings_cache():
    config_module.get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _clear_cache_after():
    yield
    _reset_settings_cache()


def test_non_local_debug_mode_is_blocked(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("JWT_SECRET", "real-secret")
    _reset_settings_cache()

    with pytest.raises(ValueError, match="debug=true"):
        config_module.get_settings()


def test_non_local_default_secrets_are_blocked(monkeypatch):
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("JWT_SECRET", config_module.DEFAULT_JWT_SECRET)
    _reset_settings_cache()

    with pytest.raises(ValueError, match="default JWT secret"):
        config_module.get_settings()


def test_negative_grace_period_is_blocked(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("JWT_SECRET", "real-secret")
    monkeypatch.setenv("GRACE_PERIOD_DAYS", "-1")
    _reset_settings_cache()

    with pytest.raises(ValueError, match="grace_period_days"):
        config_module.get_settings()


def test_local_allows_dev_defaults(monkeypatch):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("JWT_SECRET", config_module.DEFAULT_JWT_SECRET)
    monkeypatch.setenv("ENFORCE_BRACKET_PRICE_ORDER", "true")
    _reset_settings_cache()

    settings = config_module.get_settings()
    assert settings.app_env == "local"
    assert settings.grace_period_days == 3
    assert settings.enforce_bracket_price_order is True
