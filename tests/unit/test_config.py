"""Tests for settings.json handling."""

import json

import pytest

from payroll_extract.sdk.config import (
    ConfigError,
    ExtractionSettings,
    get_config_dir,
    get_data_path,
    get_setting,
    get_settings_path,
    load_extraction_settings,
    load_settings,
    save_settings,
    set_setting,
)


class TestConfigDir:
    def test_env_override(self, isolated_dirs):
        assert get_config_dir() == isolated_dirs["config"]
        assert get_settings_path() == isolated_dirs["config"] / "settings.json"

    def test_xdg_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PAYROLL_EXTRACT_CONFIG_PATH")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert get_config_dir() == tmp_path / "xdg" / "payroll-extract"


class TestSettingsFile:
    def test_missing_file_is_empty(self):
        assert load_settings() == {}
        assert get_setting("lookback", 4) == 4

    def test_save_and_set(self):
        save_settings({"lookback": 6})
        set_setting("max_workers", 2)
        assert load_settings() == {"lookback": 6, "max_workers": 2}

    def test_invalid_json(self, isolated_dirs):
        isolated_dirs["config"].mkdir(parents=True)
        (isolated_dirs["config"] / "settings.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_settings()


class TestExtractionSettings:
    def test_defaults(self):
        settings = load_extraction_settings()
        assert settings == ExtractionSettings()
        assert settings.lookback == 4
        assert settings.ocr_min_text_length == 100
        assert settings.aggressive_ranges["medicare"] == (5.0, 1000.0)
        assert settings.aggressive_ranges["socialSecurity"] == (20.0, 3000.0)

    def test_values_from_file(self):
        save_settings({"llm_timeout": 30, "aggressive_ranges": {"medicare": [10, 500]}, "unrelated": True})
        settings = load_extraction_settings()
        assert settings.llm_timeout == 30
        assert settings.aggressive_ranges == {"medicare": (10.0, 500.0)}

    @pytest.mark.parametrize("bad", [
        {"lookback": 0},
        {"llm_timeout": -1},
        {"aggressive_ranges": {"medicare": [1000, 5]}},
    ])
    def test_invalid_values(self, bad):
        save_settings(bad)
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_extraction_settings()


class TestDataPath:
    def test_xdg_default(self, isolated_dirs):
        path = get_data_path()
        assert path == isolated_dirs["data"] / "payroll-extract"
        assert path.is_dir()

    def test_settings_override(self, tmp_path):
        save_settings({"data_dir": str(tmp_path / "results")})
        assert get_data_path() == tmp_path / "results"
        assert (tmp_path / "results").is_dir()

    def test_saved_file_is_json(self, isolated_dirs):
        path = save_settings({"data_dir": "/x"})
        assert json.loads(path.read_text()) == {"data_dir": "/x"}
