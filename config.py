from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

"""Config loader and validator.

Provides `load_config` which accepts either a path to a YAML file,
a dictionary or None and returns a normalized configuration dict
using DEFAULTS for missing values.
"""


DEFAULTS: dict[str, Any] = {
    "word_bits": 32,
    "mem_cells": None,
    "lenient_log": False,
}


class ConfigError(ValueError):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def _convert_types(cfg: dict[str, Any]) -> None:
    """Normalize types for configuration values in-place.

    Raises ConfigError on conversion failure.
    """
    try:
        # word_bits (None -> unbounded python ints)
        v = cfg.get("word_bits")
        if v is None:
            cfg["word_bits"] = None
        else:
            cfg["word_bits"] = int(v)

        # mem_cells (None -> tape is exactly the program)
        v = cfg.get("mem_cells")
        if v is None:
            cfg["mem_cells"] = None
        else:
            cfg["mem_cells"] = int(v)

        # lenient_log (must already be a boolean)
        if not isinstance(cfg.get("lenient_log"), bool):
            msg = f"lenient_log must be boolean, got {cfg.get('lenient_log')!r}"
            raise ConfigError(msg)
    except Exception as e:
        msg = f"Bad types in config: {e}"
        raise ConfigError(msg) from e


def _validate_cfg(cfg: dict[str, Any]) -> None:
    """Perform semantic validation on normalized config dict.

    Raises ConfigError on invalid values.
    """
    unknown = sorted(set(cfg) - set(DEFAULTS))
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)

    if cfg["word_bits"] is not None and cfg["word_bits"] < 2:
        msg = "word_bits must be at least 2 or null"
        raise ConfigError(msg)

    if cfg["mem_cells"] is not None and cfg["mem_cells"] <= 0:
        msg = "mem_cells must be positive or null"
        raise ConfigError(msg)


def load_config(path_or_dict: str | dict[str, Any] | None = None) -> dict[str, Any]:
    """Load and normalize configuration.

    Accepts:
      - None -> returns DEFAULTS copy
      - dict -> overlay DEFAULTS with provided dict
      - str (path) -> load YAML and overlay DEFAULTS

    Returns a normalized dict or raises ConfigError.
    """
    if path_or_dict is None:
        cfg: dict[str, Any] = dict(DEFAULTS)
    elif isinstance(path_or_dict, dict):
        cfg = dict(DEFAULTS)
        cfg.update(path_or_dict)
    elif isinstance(path_or_dict, str):
        p = Path(path_or_dict)
        if not p.exists():
            msg = f"Config file not found: {path_or_dict}"
            raise ConfigError(msg)
        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            msg = f"Failed to load config file {path_or_dict}: {e}"
            raise ConfigError(msg) from e
        if not isinstance(data, dict):
            msg = f"Config file {path_or_dict} does not contain a mapping"
            raise ConfigError(msg)
        cfg = dict(DEFAULTS)
        cfg.update(data)
    else:
        msg = "Unsupported config input"
        raise ConfigError(msg)

    # convert types and validate semantics
    _convert_types(cfg)
    _validate_cfg(cfg)

    return cfg
