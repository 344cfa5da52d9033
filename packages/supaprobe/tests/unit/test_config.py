"""Unit tests for Settings loading and credential resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from supaprobe.config import Settings, get_settings, override_settings
from supaprobe.exceptions import ConfigurationError, MissingCredentialError


@pytest.mark.unit
class TestDefaults:
    def test_defaults(self) -> None:
        settings = Settings.load()
        assert settings.connection.url is None
        assert settings.connection.timeout_seconds == 30.0
        assert settings.procedures.near_point == "hotels_near_point"
        assert settings.procedures.along_route == "hotels_near_route"
        assert settings.logging.level == "warning"

    def test_missing_credentials(self) -> None:
        with pytest.raises(MissingCredentialError) as exc_info:
            Settings.load().require_connection()
        assert exc_info.value.names == ["url", "api_key"]
        assert isinstance(exc_info.value, ConfigurationError)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_override(self) -> None:
        custom = Settings()
        override_settings(custom)
        assert get_settings() is custom


@pytest.mark.unit
class TestEnvironment:
    def test_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPAPROBE_CONNECTION__URL", "https://abc.supabase.co/")
        monkeypatch.setenv("SUPAPROBE_CONNECTION__API_KEY", "anon")
        connection = Settings.load().require_connection()
        assert connection.url == "https://abc.supabase.co"
        assert connection.api_key == "anon"

    def test_legacy_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://legacy.supabase.co")
        monkeypatch.setenv("SUPABASE_API_KEY", "legacy-key")
        connection = Settings.load().require_connection()
        assert connection.url == "https://legacy.supabase.co"
        assert connection.api_key == "legacy-key"

    def test_prefixed_wins_over_legacy(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPAPROBE_CONNECTION__URL", "https://new.supabase.co")
        monkeypatch.setenv("SUPABASE_URL", "https://legacy.supabase.co")
        monkeypatch.setenv("SUPABASE_API_KEY", "legacy-key")
        connection = Settings.load().require_connection()
        assert connection.url == "https://new.supabase.co"
        assert connection.api_key == "legacy-key"

    def test_blank_value_counts_as_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPAPROBE_CONNECTION__URL", "https://abc.supabase.co")
        monkeypatch.setenv("SUPAPROBE_CONNECTION__API_KEY", "   ")
        with pytest.raises(MissingCredentialError) as exc_info:
            Settings.load().require_connection()
        assert exc_info.value.names == ["api_key"]

    def test_invalid_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "abc.supabase.co")
        monkeypatch.setenv("SUPABASE_API_KEY", "k")
        with pytest.raises(ConfigurationError, match="Invalid connection settings"):
            Settings.load().require_connection()


@pytest.mark.unit
class TestConfigFile:
    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "probe.yaml"
        path.write_text(
            "connection:\n"
            "  url: https://file.supabase.co\n"
            "  api_key: file-key\n"
            "  timeout_seconds: 5\n"
            "procedures:\n"
            "  near_point: nearby_hotels\n"
        )
        settings = Settings.load(path)
        assert settings.procedures.near_point == "nearby_hotels"
        assert settings.require_connection().timeout_seconds == 5.0

    def test_environment_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "probe.yaml"
        path.write_text("connection:\n  url: https://file.supabase.co\n  api_key: file-key\n")
        monkeypatch.setenv("SUPAPROBE_CONNECTION__API_KEY", "env-key")
        connection = Settings.load(path).require_connection()
        assert connection.url == "https://file.supabase.co"
        assert connection.api_key == "env-key"

    def test_home_config(self, tmp_path: Path) -> None:
        # HOME points at tmp_path (see conftest).
        (tmp_path / ".supaprobe").mkdir()
        (tmp_path / ".supaprobe" / "config.yaml").write_text("logging:\n  level: debug\n")
        assert Settings.load().logging.level == "debug"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            Settings.load(tmp_path / "absent.yaml")

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            Settings.load(path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("connection: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Cannot read config file") as exc_info:
            Settings.load(path)
        assert exc_info.value.context == {"path": str(path)}

    def test_unreadable_file(self, tmp_path: Path) -> None:
        folder = tmp_path / "config.yaml"
        folder.mkdir()
        with pytest.raises(ConfigurationError, match="Cannot read config file"):
            Settings.load(folder)

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("connection:\n  timeout_seconds: 0\n")
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            Settings.load(path)

    def test_api_key_not_in_repr(self, tmp_path: Path) -> None:
        path = tmp_path / "probe.yaml"
        path.write_text("connection:\n  url: https://x.supabase.co\n  api_key: very-secret\n")
        assert "very-secret" not in repr(Settings.load(path))
