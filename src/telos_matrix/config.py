"""Configuration management for the telos idea matrix.

Settings are plain values: load them once and pass them to whatever needs
them. Recommendation thresholds live in the schema and are not settings.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import SettingsError


class AnalyticsSettings(BaseModel):
    """Thresholds for batch anomaly detection."""
    outlier_threshold: float = Field(
        2.0,
        description="Standard deviations from the mean at which a score is an outlier"
    )
    rare_pattern_threshold: float = Field(
        5.0,
        description="Patterns seen in less than this percentage of ideas are rare"
    )
    timing_threshold: float = Field(
        2.0,
        description="Standard deviations from the daily mean at which a day is a spike"
    )
    min_outlier_sample: int = Field(
        3,
        description="Minimum ideas before outliers are reported"
    )
    min_timing_days: int = Field(
        7,
        description="Minimum distinct capture days before timing spikes are reported"
    )
    include_pattern_ids: bool = Field(
        True,
        description="List contributing idea ids on rare patterns"
    )
    trend_period: str = Field(
        "week",
        description="Grouping for score trends (day, week, month)"
    )

    @field_validator("trend_period")
    @classmethod
    def check_period(cls, v: str) -> str:
        if v not in ("day", "week", "month"):
            raise ValueError("trend_period must be day, week or month")
        return v


class EngineSettings(BaseModel):
    """Complete settings for the telos idea matrix."""
    telos_file: Optional[str] = Field(
        None,
        description="Path to telos.md (overrides TELOS_FILE discovery)"
    )
    log_level: str = Field("WARNING", description="Logging level for the CLI")
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)


def load_settings(path: Union[str, Path]) -> EngineSettings:
    """Load settings from a YAML file.

    Args:
        path: Path to the YAML settings file.

    Returns:
        The loaded EngineSettings.

    Raises:
        SettingsError: If the file cannot be read or does not validate.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise SettingsError(f"cannot read settings file {path}: {e}") from e

    try:
        return EngineSettings.model_validate(data or {})
    except ValidationError as e:
        raise SettingsError(f"invalid settings file {path}: {e}") from e


def find_config_file() -> Optional[Path]:
    """Find a settings file.

    Looks in (order of priority):
    1. TELOS_MATRIX_CONFIG environment variable
    2. ./telos-matrix.yaml
    3. ./telos-matrix.yml
    4. ~/.config/telos-matrix/config.yaml
    """
    env_path = os.environ.get("TELOS_MATRIX_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    for name in ["telos-matrix.yaml", "telos-matrix.yml"]:
        path = Path(name)
        if path.exists():
            return path

    user_config = Path.home() / ".config" / "telos-matrix" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def find_telos_file(settings: Optional[EngineSettings] = None) -> Optional[Path]:
    """Find the goals document.

    Looks in (order of priority):
    1. telos_file from settings
    2. TELOS_FILE environment variable
    3. ./telos.md
    4. ~/.config/telos-matrix/telos.md
    """
    if settings and settings.telos_file:
        return Path(settings.telos_file)

    env_path = os.environ.get("TELOS_FILE")
    if env_path:
        return Path(env_path)

    local = Path("telos.md")
    if local.exists():
        return local

    user_telos = Path.home() / ".config" / "telos-matrix" / "telos.md"
    if user_telos.exists():
        return user_telos

    return None


def save_default_settings(path: Union[str, Path]) -> None:
    """Save the default settings to a YAML file.

    Args:
        path: Path where to save the settings.
    """
    data = EngineSettings().model_dump()

    yaml_content = """# Telos Idea Matrix Settings
# ==========================
#
# Copy this file to one of these locations:
#   - ./telos-matrix.yaml (current directory)
#   - ~/.config/telos-matrix/config.yaml (user config)
#
# Or set the TELOS_MATRIX_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
