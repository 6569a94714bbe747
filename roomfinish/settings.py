from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, validator

from roomfinish.exceptions import ConfigurationError
from roomfinish.geometry.contract import COLUMN_PROBE_THICKNESS_M, OPENING_PROBE_THICKNESS_M
from roomfinish.host.elements import DetailLevel

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

DEFAULT_CONFIG_PATH = "config/default.yaml"
CONFIG_ENV_VAR = "ROOMFINISH_CONFIG"


class GeometrySettings(BaseModel):
    # Probe thicknesses in metres; converted to the host unit per run
    opening_probe_thickness_m: float = Field(OPENING_PROBE_THICKNESS_M, gt=0.0, le=1.0)
    column_probe_thickness_m: float = Field(COLUMN_PROBE_THICKNESS_M, gt=0.0, le=5.0)
    # False skips the boolean probe and always uses the Z-overlap estimate
    boolean_subtraction: bool = True
    include_columns: bool = True
    detail_level: DetailLevel = DetailLevel.FINE


class OutputSettings(BaseModel):
    decimals: int = Field(2, ge=0, le=6)


class FieldMapping(BaseModel):
    """Room parameter receiving each computed quantity; ``None`` disables a field."""

    wall_area: str | None = "Wall Finish Area"
    skirting_length: str | None = "Skirting Length"
    height: str | None = "Height (Finishes)"

    @validator("wall_area", "skirting_length", "height", pre=True)
    def _blank_is_unmapped(cls, value: Any) -> str | None:  # noqa: D401
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def mapped(self) -> dict[str, str]:
        """Quantity name -> parameter name for every enabled mapping."""
        return {
            quantity: name
            for quantity, name in (
                ("wall_area", self.wall_area),
                ("skirting_length", self.skirting_length),
                ("height", self.height),
            )
            if name
        }


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: str | None = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class Settings(BaseModel):
    geometry: GeometrySettings = Field(default_factory=GeometrySettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    fields: FieldMapping = Field(default_factory=FieldMapping)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                ROOMFINISH_CONFIG environment variable or defaults to
                config/default.yaml; a missing default file yields the
                built-in defaults.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If an explicit configuration file does not
                exist or the configuration is invalid.
        """
        explicit = path is not None or CONFIG_ENV_VAR in os.environ
        config_path = path or Path(os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
        if not config_path.exists():
            if explicit:
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    {"path": str(config_path)},
                )
            return cls()
        with config_path.open("r", encoding="utf-8") as fp:
            try:
                payload = yaml.safe_load(fp) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}", {"path": str(config_path)}) from exc
        try:
            return cls(**payload)
        except (TypeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "GeometrySettings",
    "OutputSettings",
    "FieldMapping",
    "LoggingSettings",
    "get_settings",
]
