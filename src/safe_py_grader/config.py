from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .policy import HostPolicy

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _read_engine_table(path: Path) -> dict[str, Any]:
    """Read the `[engine]` table of a grader TOML file.

    Example:
        ```python
        raw = _read_engine_table(Path("/tmp/grader.toml"))
        ```
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    engine_obj = raw.get("engine", {})
    if not isinstance(engine_obj, dict):
        raise ConfigError("'engine' must be a TOML table")
    return engine_obj


def _optional_path(value: Any, field_name: str, base: Path) -> Path | None:
    """Resolve an optional path setting relative to the config file.

    Example:
        ```python
        path = _optional_path("catalog.toml", "catalog_path", Path("/etc/spg"))
        ```
    """
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field_name}' must be a non-empty string")
    candidate = Path(value).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate


@dataclass(slots=True)
class EngineConfig:
    """Top-level settings for a grading engine instance.

    Example:
        ```python
        config = EngineConfig(snapshot_dir=Path("/tmp/spg-snapshots"))
        ```
    """

    policy: HostPolicy = field(default_factory=HostPolicy)
    catalog_path: Path | None = None
    snapshot_dir: Path | None = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Normalize and validate the log level.

        Example:
            ```python
            EngineConfig(log_level="info")
            ```
        """
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"'log_level' must be one of {sorted(_LOG_LEVELS)}")

    @property
    def log_level_value(self) -> int:
        """Return the numeric `logging` level.

        Example:
            ```python
            level = EngineConfig().log_level_value
            ```
        """
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_file(cls, config_path: str) -> "EngineConfig":
        """Create engine settings from a TOML file with `[policy]` and `[engine]` tables.

        Example:
            ```python
            config = EngineConfig.from_file("/tmp/grader.toml")
            ```
        """
        path = Path(config_path)
        raw = _read_engine_table(path)
        base = path.resolve().parent
        log_level = raw.get("log_level", "WARNING")
        if not isinstance(log_level, str):
            raise ConfigError("'log_level' must be a string")
        return cls(
            policy=HostPolicy.from_file(config_path),
            catalog_path=_optional_path(raw.get("catalog_path"), "catalog_path", base),
            snapshot_dir=_optional_path(raw.get("snapshot_dir"), "snapshot_dir", base),
            log_level=log_level,
        )
