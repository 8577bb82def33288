from lonelyserver.config import Settings, load_settings


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_API_ID", "123")
    monkeypatch.setenv("LONELY_CHAT_ID", "-100")
    monkeypatch.setenv("LONELY_CONFIG_PATH", "/srv/lonely/config.yml")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    load_settings.cache_clear()
    try:
        settings = load_settings()
    finally:
        load_settings.cache_clear()
    assert settings.api_id == 123
    assert settings.chat_id == -100
    assert settings.config_path == "/srv/lonely/config.yml"
    assert settings.log_level == "DEBUG"
    assert settings.has_supabase is False


def test_has_supabase_needs_url_and_key():
    assert Settings(supabase_url="https://x.supabase.co").has_supabase is False
    assert Settings(supabase_url="https://x.supabase.co", supabase_service_role_key="k").has_supabase is True
