"""Utility helpers for configuration and logging.

Kept free of TensorFlow so that the API and scripts can read configuration
and set up logging before a model is loaded.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def load_config(config_path: str | Path) -> Dict[str, Any]:
    with open(config_path, "r", encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    config.setdefault("_config_dir", str(Path(config_path).resolve().parent))
    return config


def get_logger(name: str, level: str | int = "INFO") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def set_log_level(level: str | int) -> None:
    """Apply ``level`` to every logger created through :func:`get_logger`."""
    for name in list(logging.root.manager.loggerDict):
        if name == "floorprice" or name.startswith(("floorprice.", "api.", "__main__")):
            logging.getLogger(name).setLevel(level)


def resolve_path(path: str | Path, base_dir: Optional[str | Path] = None) -> Path:
    p = Path(path)
    if not p.is_absolute() and base_dir is not None:
        p = Path(base_dir) / p
    return p


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "get_logger",
    "load_config",
    "resolve_path",
    "set_log_level",
]
