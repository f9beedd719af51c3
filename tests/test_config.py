"""Tests for configuration loading.

**Feature: daybook**
"""

import pytest

from daybook.config import (
    Settings,
    config_path,
    create_template_config,
    load_config,
    load_settings,
    validate_config,
)
from daybook.errors import ConfigError


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point the config directory at a temporary path."""
    monkeypatch.setenv("DAYBOOK_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    return tmp_path


class TestConfig:
    """
    **Feature: daybook, Property 31: Configuration Defaults**

    Missing files fall back to defaults; invalid values are rejected.
    """

    def test_missing_file(self, config_dir):
        assert load_config() is None
        settings = load_settings()

        assert settings.backend.mode == "local"
        assert settings.journal.refetch_delay == 0.5
        assert settings.journal.poll_interval == 30

    def test_template_round_trip(self, config_dir):
        path = create_template_config()

        assert path == config_path()
        assert path.parent == config_dir
        assert load_settings() == Settings()

    def test_unparseable_file(self, config_dir):
        config_path().write_text("[backend")

        with pytest.raises(ConfigError):
            load_config()

    def test_wrong_section_type(self, config_dir):
        config_path().write_text("backend = []\n")

        assert load_config() == {"backend": []}
        with pytest.raises(ConfigError):
            load_settings()

    def test_invalid_value(self, config_dir):
        config_path().write_text('[backend]\nmode = "cloud"\n')

        with pytest.raises(ConfigError):
            load_settings()

    def test_env_fallback(self, config_dir, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

        settings = Settings.from_config({"backend": {"mode": "supabase"}})

        assert settings.supabase.url == "https://x.supabase.co"
        assert settings.supabase.anon_key == "anon"

    def test_validate_supabase_keys(self, config_dir):
        missing = validate_config({"backend": {"mode": "supabase"}, "supabase": {"url": "https://x"}})

        assert missing == ["supabase.anon_key (or set SUPABASE_ANON_KEY env var)"]
        assert validate_config({"backend": {"mode": "local"}}) == []
