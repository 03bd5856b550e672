"""Configuration management for Payroll Extract.

Configuration lives in a single settings.json file. Every key is optional;
missing keys fall back to the defaults on ExtractionSettings.

    {
      "llm_timeout": 120,
      "vision_timeout": 120,
      "ocr_timeout": 120,
      "ocr_min_text_length": 100,
      "lookback": 4,
      "aggressive_ranges": {"medicare": [5, 1000], "socialSecurity": [20, 3000]},
      "max_workers": 4,
      "data_dir": "/path/to/results"
    }

Config directory resolution:
1. PAYROLL_EXTRACT_CONFIG_PATH environment variable (if set)
2. ~/.config/payroll-extract/ (XDG_CONFIG_HOME fallback)

Data path resolution:
1. settings.json "data_dir" key (if set)
2. XDG_DATA_HOME/payroll-extract/ or ~/.local/share/payroll-extract/
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


APP_NAME = "payroll-extract"
SETTINGS_FILENAME = "settings.json"


class ConfigError(Exception):
    """Raised when settings.json exists but cannot be used."""
    pass


class ExtractionSettings(BaseModel):
    """Tunable parameters for the extraction engine."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    llm_timeout: int = Field(default=120, gt=0, description="Language-model call timeout (seconds)")
    vision_timeout: int = Field(default=120, gt=0, description="Vision call timeout (seconds)")
    ocr_timeout: int = Field(default=120, gt=0, description="OCR call timeout (seconds)")
    ocr_min_text_length: int = Field(
        default=100, ge=0,
        description="Pages whose text layer is shorter than this are sent to OCR",
    )
    lookback: int = Field(default=4, ge=1, description="Line-window size for keyword scans")
    aggressive_ranges: Dict[str, Tuple[float, float]] = Field(
        default_factory=lambda: {
            "medicare": (5.0, 1000.0),
            "socialSecurity": (20.0, 3000.0),
        },
        description="Plausible per-period amount range for the aggressive scan, by deduction key",
    )
    max_workers: int = Field(default=4, ge=1, description="Concurrent documents in batch mode")

    @field_validator("aggressive_ranges")
    @classmethod
    def check_ranges(cls, value: Dict[str, Tuple[float, float]]) -> Dict[str, Tuple[float, float]]:
        for key, (low, high) in value.items():
            if low > high:
                raise ValueError(f"aggressive_ranges.{key}: min {low} exceeds max {high}")
        return value


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. PAYROLL_EXTRACT_CONFIG_PATH environment variable
    2. ~/.config/payroll-extract/ (XDG_CONFIG_HOME)

    Returns:
        Path to the configuration directory
    """
    env_path = os.environ.get("PAYROLL_EXTRACT_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Get the path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)

    Raises:
        ConfigError: If the file is not valid JSON
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    try:
        with open(settings_file, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {settings_file}: {e}") from e


def save_settings(settings: dict) -> Path:
    """Save settings to settings.json.

    Args:
        settings: Settings dictionary to save

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a single value from settings.json."""
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a single value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def load_extraction_settings() -> ExtractionSettings:
    """Load and validate engine settings from settings.json.

    Raises:
        ConfigError: If any value fails validation
    """
    settings = load_settings()
    try:
        return ExtractionSettings.model_validate(settings)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {get_settings_path()}:\n{e}") from e


def get_data_path() -> Path:
    """Get the data directory path.

    Returns:
        Path to the data directory (created if doesn't exist)
    """
    custom = load_settings().get("data_dir")
    if custom:
        data_path = Path(custom)
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        data_path = Path(xdg_data_home) / APP_NAME
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path
