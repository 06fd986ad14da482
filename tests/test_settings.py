"""Tests for environment parsing helpers."""

from config.settings import Settings, _env_bool, _env_list, get_settings


class TestEnvHelpers:
    def test_env_bool(self, monkeypatch):
        monkeypatch.setenv("FLAG", "Yes")
        assert _env_bool("FLAG", False) is True
        monkeypatch.setenv("FLAG", "0")
        assert _env_bool("FLAG", True) is False
        monkeypatch.delenv("FLAG")
        assert _env_bool("FLAG", True) is True

    def test_env_list(self, monkeypatch):
        monkeypatch.setenv("ORIGINS", "http://a.test, ,http://b.test")
        assert _env_list("ORIGINS", "") == ["http://a.test", "http://b.test"]
        monkeypatch.delenv("ORIGINS")
        assert _env_list("ORIGINS", "http://localhost:3000") == ["http://localhost:3000"]

    def test_settings_cached(self):
        assert get_settings() is get_settings()
        assert isinstance(get_settings(), Settings)
