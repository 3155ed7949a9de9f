import logging
from pathlib import Path

import pytest

from safe_py_grader.config import EngineConfig
from safe_py_grader.errors import ConfigError


def test_engine_table_paths_resolve_relative_to_config_file(tmp_path: Path) -> None:
    config_file = tmp_path / "grader.toml"
    config_file.write_text(
        (
            "[policy]\n"
            "memory_limit_mb = 128\n"
            "\n"
            "[engine]\n"
            "catalog_path = \"exercises/catalog.toml\"\n"
            "snapshot_dir = \"snapshots\"\n"
            "log_level = \"info\"\n"
        ),
        encoding="utf-8",
    )
    config = EngineConfig.from_file(str(config_file))
    assert config.catalog_path == tmp_path.resolve() / "exercises" / "catalog.toml"
    assert config.snapshot_dir == tmp_path.resolve() / "snapshots"
    assert config.log_level == "INFO"
    assert config.log_level_value == logging.INFO
    assert config.policy.memory_limit_mb == 128


def test_engine_table_is_optional(tmp_path: Path) -> None:
    config_file = tmp_path / "grader.toml"
    config_file.write_text("[policy]\nmode = \"restrict\"\n", encoding="utf-8")
    config = EngineConfig.from_file(str(config_file))
    assert config.catalog_path is None
    assert config.snapshot_dir is None
    assert config.log_level == "WARNING"


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        EngineConfig.from_file(str(tmp_path / "missing.toml"))


def test_invalid_log_level() -> None:
    with pytest.raises(ConfigError, match="log_level"):
        EngineConfig(log_level="loud")


def test_engine_must_be_a_table(tmp_path: Path) -> None:
    config_file = tmp_path / "grader.toml"
    config_file.write_text("engine = 3\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="TOML table"):
        EngineConfig.from_file(str(config_file))
