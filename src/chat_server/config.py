"""Configuration loading utilities for the chat server.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable HATS_CONFIG
3. Fallback to "config/default.yaml"

It also supports optional overrides from environment variables with prefix
``HATS__`` (e.g., HATS__AGENTS__TIMEOUT=60 or
HATS__SETTINGS__IMAGE_API_BASE=http://gpu-box:8001).
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "HATS__"

DEFAULTS: Dict[str, Any] = {
    "server": {"cors_origins": ["*"]},
    "orchestrator": {"pacing_delay": 0.35},
    "agents": {"timeout": 300},
    "settings": {},
}


def _coerce(value: str) -> Any:
    # Attempt to parse simple types (bool, int, float)
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix HATS__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., HATS__ORCHESTRATOR__PACING_DELAY -> cfg["orchestrator"]["pacing_delay"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        leaf = parts[-1]
        # URLs contain dots; keep *_api_base values as strings.
        sub[leaf] = value if leaf.endswith("_api_base") else _coerce(value)
    return cfg


def _merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration for the chat server.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``HATS_CONFIG`` is consulted. As a last resort
        ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Parsed configuration merged over the built-in defaults, with
        environment overrides applied.
    """
    # Resolve path precedence
    if path is None:
        path = os.environ.get("HATS_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("config file not found at %s; using defaults.", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}")

    if not isinstance(cfg, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_merge(DEFAULTS, cfg))
