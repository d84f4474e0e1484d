"""Configuration loading for multirepo."""

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


@dataclass(frozen=True)
class SyncConfig:
    """Settings for a single run, passed explicitly to every component."""
    owner: str = ""
    target_dir: Path = Path(".")
    parallel_workers: int = 10
    stream_buffer: int = 16
    force_color: bool = True
    api_url: str | None = None
    log_level: str = "INFO"
    token: str | None = None

    def __post_init__(self):
        if self.parallel_workers < 1:
            raise ConfigError(f"parallel_workers must be at least 1, got {self.parallel_workers}")
        if self.stream_buffer < 1:
            raise ConfigError(f"stream_buffer must be at least 1, got {self.stream_buffer}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"unknown log_level: {self.log_level}")

    def with_overrides(self, **overrides: Any) -> "SyncConfig":
        """Copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "target_dir" in values:
            values["target_dir"] = Path(values["target_dir"]).expanduser()
        return replace(self, **values)


def load_config(config_path: Path | None = None) -> SyncConfig:
    """Load configuration from a YAML file.

    Without an explicit path the default location is tried and silently
    skipped if absent. An explicit path that does not exist is an error.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        if config_path:
            raise ConfigError(f"Config file not found: {path}")
        return SyncConfig()

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")

    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    if "target_dir" in data:
        data["target_dir"] = Path(str(data["target_dir"])).expanduser()
    try:
        return SyncConfig(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e
