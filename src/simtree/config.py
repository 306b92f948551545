"""
Runtime configuration.

Values come from ``configs/config.yaml`` and are overridden by environment
variables (a ``.env`` file is honoured). The resulting ``Settings`` is passed
explicitly to the store, client and builder.
"""

from __future__ import annotations
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

DEFAULT_CONFIG = "configs/config.yaml"


@dataclass
class Settings:
    db_path: str = "data/cache/similar.db"
    api_key: Optional[str] = None
    base_url: str = "https://ws.audioscrobbler.com/2.0/"
    user_agent: str = "simtree/0.1"
    timeout: float = 20
    depth: int = 2
    threshold: float = 0.7
    log_level: str = "INFO"


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"config section {name!r} must be a mapping")
    return value


def load_settings(config_path: str | Path | None = DEFAULT_CONFIG,
                  env_file: str | Path | None = None) -> Settings:
    """
    Build ``Settings`` from a YAML file and the environment.

    Args:
        config_path: YAML file; silently skipped if it does not exist
        env_file: Explicit .env file; defaults to python-dotenv's lookup

    Returns:
        Settings with environment variables taking precedence
    """
    load_dotenv(env_file)

    cfg: Dict[str, Any] = {}
    if config_path is not None and Path(config_path).exists():
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

    store = _section(cfg, "store")
    lastfm = _section(cfg, "lastfm")
    tree = _section(cfg, "tree")
    defaults = Settings()

    settings = Settings(
        db_path=os.getenv("SIMTREE_DB", store.get("path", defaults.db_path)),
        api_key=os.getenv("LASTFM_KEY") or lastfm.get("api_key") or None,
        base_url=os.getenv("LASTFM_BASE_URL", lastfm.get("base_url", defaults.base_url)),
        user_agent=os.getenv("LASTFM_USER_AGENT", lastfm.get("user_agent", defaults.user_agent)),
        timeout=float(lastfm.get("timeout", defaults.timeout)),
        depth=int(os.getenv("DEPTH", tree.get("depth", defaults.depth))),
        threshold=float(os.getenv("THRESHOLD", tree.get("threshold", defaults.threshold))),
        log_level=os.getenv("SIMTREE_LOG_LEVEL", cfg.get("log_level", defaults.log_level)),
    )
    logger.debug(f"Settings loaded (db={settings.db_path}, depth={settings.depth}, "
                 f"threshold={settings.threshold}, api_key={'set' if settings.api_key else 'unset'})")
    return settings


def setup_logging(level: str = "INFO"):
    """Send loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
