"""Experiment configuration: YAML file values merged under CLI options."""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Dict, Optional

import yaml

from pgibbs.models import ExperimentConfig

# YAML key -> ExperimentConfig field
_KEY_ALIASES = {"model": "model_filename", "runtime": "runtimes"}


_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


def _as_int(name: str, value: Any) -> int:
    """Integer option; integral floats and digit strings accepted, nothing truncated."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{name} must be an integer, got {value!r}")
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def load_config(config_file: str) -> dict:
    """Load configuration from YAML file."""
    with open(config_file, "r", encoding="utf-8") as file:
        config = yaml.safe_load(file)
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping")
    return config


def build_config(
    overrides: Dict[str, Any], file_cfg: Optional[Dict[str, Any]] = None
) -> ExperimentConfig:
    """Merge CLI overrides (non-None values win) over file values over defaults."""
    known = {f.name for f in fields(ExperimentConfig)}
    values: Dict[str, Any] = {}
    for source in (file_cfg or {}, overrides):
        for key, value in source.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known or value is None:
                continue
            values[name] = value

    if not values.get("model_filename"):
        raise ValueError("a model file is required (positional argument or 'model' key)")
    if "runtimes" in values:
        runtimes = values["runtimes"]
        if isinstance(runtimes, (int, float)):
            runtimes = [runtimes]
        try:
            values["runtimes"] = tuple(float(r) for r in runtimes)
        except (TypeError, ValueError) as e:
            raise ValueError(f"runtime must be a list of seconds: {runtimes!r}") from e
    for name in ("treesize", "treeheight", "treewidth", "factorsize", "subthreads", "ncpus"):
        if name in values:
            values[name] = _as_int(name, values[name])
    if "priorities" in values:
        values["priorities"] = _as_bool("priorities", values["priorities"])
    if "image_ext" in values and not str(values["image_ext"]).startswith("."):
        values["image_ext"] = "." + str(values["image_ext"])

    config = ExperimentConfig(**values)
    config.validate()
    return config
