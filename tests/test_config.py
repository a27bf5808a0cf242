"""Tests for settings and login identifiers."""

from wayleave_tracker.config import Settings, cpr_from_login_email, login_email


def test_placeholder_credentials_are_not_configured() -> None:
    assert not Settings(supabase_url="", supabase_anon_key="").is_backend_configured
    assert not Settings(
        supabase_url="YOUR_SUPABASE_URL", supabase_anon_key="YOUR_SUPABASE_ANON_KEY"
    ).is_backend_configured
    assert Settings(
        supabase_url="https://demo.supabase.co", supabase_anon_key="anon"
    ).is_backend_configured


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("ATTACHMENTS_BUCKET", "permits")
    monkeypatch.setenv("TOAST_TTL_SECONDS", "2.5")

    settings = Settings()

    assert settings.attachments_bucket == "permits"
    assert settings.toast_ttl_seconds == 2.5


def test_login_email_round_trip() -> None:
    email = login_email(" 123456789 ", "wayleave.local")

    assert email == "123456789@wayleave.local"
    assert cpr_from_login_email(email) == "123456789"
    assert cpr_from_login_email(None) == ""
