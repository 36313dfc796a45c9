from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .logger import get_logger

log = get_logger(__name__)

DEFAULT_TARSNAP_BIN = "/usr/local/bin/tarsnap"
DEFAULT_CONFIG_NAME = ".tsmrc"

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class RetentionConfig(BaseModel):
    """How far back archives are unconditionally retained."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    keep_weeks: int = Field(alias="KeepWeeks", ge=0)
    keep_months: int = Field(alias="KeepMonths", ge=0)


class ScheduleConfig(BaseModel):
    """Schedule for the long-running nightly runner."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    nightly_time: str = Field("02:00", alias="NightlyTime")

    @field_validator("nightly_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if not _TIME_OF_DAY.match(value):
            raise ValueError(f"expected HH:MM, got {value!r}")
        return value

    @property
    def hour(self) -> int:
        return int(self.nightly_time.split(":")[0])

    @property
    def minute(self) -> int:
        return int(self.nightly_time.split(":")[1])


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tarsnap_bin: str = Field(DEFAULT_TARSNAP_BIN, alias="TarsnapBin")
    tarsnap_args: List[str] = Field(default_factory=list, alias="TarsnapArgs")
    backup_dirs: List[str] = Field(default_factory=list, alias="BackupDirs")
    keep_weeks: int = Field(alias="KeepWeeks", ge=0)
    keep_months: int = Field(alias="KeepMonths", ge=0)
    expire_backups: bool = Field(False, alias="ExpireBackups")
    show_current: bool = Field(False, alias="ShowCurrent")
    strict_names: bool = Field(False, alias="StrictNames")
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig, alias="Schedule")

    @field_validator("tarsnap_args", mode="before")
    @classmethod
    def _strip_quotes(cls, value: Any) -> Any:
        # Quotes protect options starting with "-" in the config file; tarsnap must not see them.
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item).replace('"', "") for item in value]
        return value

    @field_validator("backup_dirs", mode="before")
    @classmethod
    def _stringify_dirs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    @property
    def retention(self) -> RetentionConfig:
        return RetentionConfig(keep_weeks=self.keep_weeks, keep_months=self.keep_months)


def _find_config_path(explicit: Optional[str]) -> Optional[Path]:
    if explicit:
        # An explicit path must exist; never silently fall back to another file.
        return Path(explicit)
    candidates = []
    env = os.getenv("TSM_CONFIG")
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path(DEFAULT_CONFIG_NAME),
        Path.home() / DEFAULT_CONFIG_NAME,
    ])
    for p in candidates:
        if p.exists() and p.is_file():
            return p
    return None


def _describe_validation_error(path: Path, exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        if err["type"] == "missing":
            problems.append(f"Missing config value {loc}")
        else:
            problems.append(f"{loc}: {err['msg']}")
    return f"Invalid config {path}: " + "; ".join(problems)


def settings_from_mapping(raw: Dict[str, Any], source: Path | str = "<mapping>") -> Settings:
    """Validate a raw mapping, applying environment overrides."""
    data = dict(raw)
    if tarsnap_bin := os.getenv("TSM_TARSNAP_BIN"):
        data.pop("tarsnap_bin", None)
        data["TarsnapBin"] = tarsnap_bin
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(_describe_validation_error(Path(source), e)) from e


def load_settings(path: Optional[str] = None) -> Settings:
    p = _find_config_path(path)
    if p is None:
        raise ConfigError(
            f"No config file found (tried $TSM_CONFIG, ./{DEFAULT_CONFIG_NAME}, ~/{DEFAULT_CONFIG_NAME})"
        )

    try:
        with open(p, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Read config {str(p)!r}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Parse config {str(p)!r}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {str(p)!r} must be a mapping, got {type(raw).__name__}")

    settings = settings_from_mapping(raw, source=p)
    log.debug("Loaded config from %s", p)
    return settings
