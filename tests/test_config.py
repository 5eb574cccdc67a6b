from __future__ import annotations

from authsync.shared.config import get_settings


def test_settings_defaults(monkeypatch):
    for name in (
        "SITE_URL",
        "APP_START_URL",
        "MERGE_PROFILE_DATA",
        "STRIPE_PRICE_IDS",
        "PROFILE_POLL_INTERVAL_SECONDS",
        "AUTH_REDIRECT_PATH",
        "SIGNIN_PATH",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.site_url == "http://localhost:8000"
    assert settings.app_start_url == "http://localhost:8000"
    assert settings.auth_redirect_path == "/dashboard"
    assert settings.signin_path == "/auth/signin"
    assert settings.merge_profile_data is True
    assert settings.profile_poll_interval_seconds == 5.0
    assert settings.stripe_price_ids == {}


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setenv("SITE_URL", "https://app.example.com/")
    monkeypatch.setenv("MERGE_PROFILE_DATA", "false")
    monkeypatch.setenv("STRIPE_PRICE_IDS", '{"starter": "price_starter", "pro": "price_pro"}')

    settings = get_settings()

    assert settings.supabase_url == "https://project.supabase.co"
    assert settings.site_url == "https://app.example.com"
    assert settings.merge_profile_data is False
    assert settings.stripe_price_ids["pro"] == "price_pro"
