"""
Engine configuration.

Resolution order (later wins):
    1. EngineConfig defaults
    2. Optional YAML file
    3. VOCAFORM_* environment variables (a .env file is loaded first)
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

ENV_PREFIX = "VOCAFORM_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Properties:
        autosave_interval: Seconds between periodic saves
        low_confidence_threshold: Voice values below this get a warning
        storage_key_prefix: Prefix of autosave storage keys
        storage_dir: Directory used by the file store (CLI only)
    """

    autosave_interval: float = 5.0
    low_confidence_threshold: float = 0.7
    storage_key_prefix: str = "vocaform_autosave"
    storage_dir: Optional[str] = None

    def __post_init__(self):
        if self.autosave_interval <= 0:
            raise ValueError(f"autosave_interval must be positive, got {self.autosave_interval}")
        if not 0.0 <= self.low_confidence_threshold <= 1.0:
            raise ValueError(
                f"low_confidence_threshold must be within [0, 1], got {self.low_confidence_threshold}"
            )


_CASTS = {
    "autosave_interval": float,
    "low_confidence_threshold": float,
    "storage_key_prefix": str,
    "storage_dir": str,
}


def _coerce(values: Mapping[str, Any], source: str) -> Dict[str, Any]:
    known = {f.name for f in fields(EngineConfig)}
    coerced: Dict[str, Any] = {}
    for key, raw in values.items():
        if key not in known:
            raise ValueError(f"Unknown configuration key '{key}' in {source}")
        if raw is None:
            coerced[key] = None
            continue
        try:
            coerced[key] = _CASTS[key](raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value {raw!r} for '{key}' in {source}") from e
    return coerced


def load_config(
    path: Path | str | None = None,
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Path | str | None = None,
) -> EngineConfig:
    """
    Build an EngineConfig from defaults, a YAML file and the environment.

    Args:
        path: Optional YAML file holding EngineConfig keys
        env: Environment mapping; defaults to os.environ after loading .env
        dotenv_path: Explicit .env file (default: search from the cwd)

    Raises:
        ValueError: unknown keys or malformed values
    """
    values: Dict[str, Any] = {}

    if path is not None:
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must hold a mapping")
        values.update(_coerce(loaded, str(path)))

    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    # unrelated VOCAFORM_* variables are ignored
    from_env = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX) and key[len(ENV_PREFIX):].lower() in _CASTS
    }
    values.update(_coerce(from_env, "environment"))

    return EngineConfig(**values)
