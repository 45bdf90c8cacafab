from __future__ import annotations

from pathlib import Path

import pytest

from rules.config import (
    ConfigError,
    CycleDetection,
    find_schema,
    load_config,
    resolve_within_root,
)
from rules.severity import Severity


def _write_config(repo_root: Path, toml_content: str) -> None:
    (repo_root / "archguard.toml").write_text(toml_content, encoding="utf-8")


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.schema_path is None
    assert config.workers == 8
    assert config.modules_dir == ".archguard/modules"
    assert config.connections_dir == ".archguard/connections/contracts"
    assert config.fail_on.error is True
    assert config.fail_on.warning is False
    assert config.connections.cycle_severity == Severity.WARNING


def test_unknown_top_level_key_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "bogus_key = true")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_invalid_toml_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "exclude = [")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(tmp_path)


def test_valid_config_accepted(tmp_path: Path) -> None:
    _write_config(tmp_path, 'exclude = ["vendor/**"]')

    config = load_config(tmp_path)

    assert config.exclude == ["vendor/**"]


def test_unknown_nested_fail_on_key_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[fail_on]
error = true
info = true
""".strip(),
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_valid_nested_config_accepted(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
schema = "rules/archguard.schema.json"
workers = 2
max_file_bytes = 4096

[fail_on]
warning = true

[connections]
cycle_severity = "error"
cycle_detection = "mutual"
""".strip(),
    )

    config = load_config(tmp_path)

    assert config.schema_path == "rules/archguard.schema.json"
    assert config.workers == 2
    assert config.max_file_bytes == 4096
    assert config.fail_on.warning is True
    assert config.fail_on.critical is True
    assert config.connections.cycle_severity == Severity.ERROR
    assert config.connections.cycle_detection == CycleDetection.MUTUAL


def test_zero_workers_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "workers = 0")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_absolute_modules_dir_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, 'modules_dir = "/etc/modules"')

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_resolve_within_root_rejects_escape(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    with pytest.raises(ConfigError, match="escapes the repository root"):
        resolve_within_root(repo_root, "../outside", setting="schema")


def test_find_schema_prefers_config_then_defaults(tmp_path: Path) -> None:
    (tmp_path / "archguard.schema.toml").write_text("", encoding="utf-8")

    assert find_schema(tmp_path, load_config(tmp_path)) == tmp_path / (
        "archguard.schema.toml"
    )

    _write_config(tmp_path, 'schema = "custom.json"')
    assert find_schema(tmp_path, load_config(tmp_path)) == (
        tmp_path.resolve() / "custom.json"
    )


def test_find_schema_returns_none_without_candidates(tmp_path: Path) -> None:
    assert find_schema(tmp_path, load_config(tmp_path)) is None
