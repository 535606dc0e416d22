"""Config loading, normalization and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from config import DEFAULTS, ConfigError, load_config


def test_defaults() -> None:
    cfg = load_config(None)
    assert cfg == DEFAULTS
    assert cfg is not DEFAULTS


def test_dict_overlay() -> None:
    cfg = load_config({"word_bits": "64", "lenient_log": True})
    assert cfg["word_bits"] == 64
    assert cfg["lenient_log"] is True
    assert cfg["mem_cells"] is None


def test_yaml_file(tmp_path: Path) -> None:
    p = tmp_path / "vm.yaml"
    p.write_text("word_bits: null\nmem_cells: 128\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg["word_bits"] is None
    assert cfg["mem_cells"] == 128


def test_empty_yaml_file(tmp_path: Path) -> None:
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    assert load_config(str(p)) == DEFAULTS


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_not_a_mapping(tmp_path: Path) -> None:
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(p))


def test_broken_yaml(tmp_path: Path) -> None:
    p = tmp_path / "broken.yaml"
    p.write_text("word_bits: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Failed to load"):
        load_config(str(p))


@pytest.mark.parametrize(
    "overrides",
    [
        {"word_bits": "wide"},
        {"word_bits": 1},
        {"mem_cells": 0},
        {"mem_cells": -5},
        {"tick_limit": 10},
        {"lenient_log": "false"},
        {"lenient_log": 1},
        {"lenient_log": None},
    ],
)
def test_invalid_values(overrides: dict) -> None:
    with pytest.raises(ConfigError):
        load_config(overrides)


def test_unsupported_input() -> None:
    with pytest.raises(ConfigError):
        load_config(42)  # type: ignore[arg-type]


def test_yaml_string_bool_rejected(tmp_path: Path) -> None:
    p = tmp_path / "vm.yaml"
    p.write_text('lenient_log: "false"\n', encoding="utf-8")
    with pytest.raises(ConfigError, match="lenient_log must be boolean"):
        load_config(str(p))
