"""
Shared logging configuration helpers.

Uses the `logging` section of config.yaml and an optional LOG_LEVEL
environment override to configure the root logger with a console handler
and, when `logging.file` is set, a file handler.
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .config import load_config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_logging_config(logging_cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Translate the `logging` config section into a dictConfig mapping."""
    env_level = os.getenv("LOG_LEVEL")
    level_name = (env_level or logging_cfg.get("level") or "INFO").upper()
    log_format = logging_cfg.get("format") or DEFAULT_FORMAT
    log_file = logging_cfg.get("file")

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level_name,
        },
    }
    root_handlers = ["console"]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": level_name,
            "filename": log_file,
            "encoding": "utf-8",
        }
        root_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": log_format}},
        "handlers": handlers,
        "root": {"level": level_name, "handlers": root_handlers},
    }


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """
    Initialize application-wide logging configuration.

    Args:
        config: Already-loaded configuration; read from config.yaml when omitted.
    """
    if config is None:
        config = load_config()
    logging_cfg = config.get("logging", {}) if isinstance(config, dict) else {}
    if not isinstance(logging_cfg, dict):
        logging_cfg = {}
    logging.config.dictConfig(build_logging_config(logging_cfg))
