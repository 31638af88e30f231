"""
Configuration management.

Loads settings from config.yaml (path overridable via WIKIGRAPH_CONFIG) and
provides per-section accessors. Every value read from here has a code default,
so a missing file simply yields an empty configuration.
"""

import os
from typing import Dict, Optional

import yaml

CONFIG_PATH = "config.yaml"


def get_config_path(config_path: Optional[str] = None) -> str:
    """Resolve the config file path (explicit argument > env var > default)."""
    return config_path or os.getenv("WIKIGRAPH_CONFIG") or CONFIG_PATH


def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration from YAML file."""
    path = get_config_path(config_path)
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    return config if isinstance(config, dict) else {}


def _section(config: Optional[Dict], name: str) -> Dict:
    if config is None:
        config = load_config()
    section = config.get(name, {})
    return section if isinstance(section, dict) else {}


def get_sparql_config(config: Optional[Dict] = None) -> Dict:
    """Get SPARQL transport settings (endpoint, search_url, user_agent, timeout, result_limit)."""
    return _section(config, "sparql")


def get_crawler_config(config: Optional[Dict] = None) -> Dict:
    """Get crawler settings (batch_delay, max_entities)."""
    return _section(config, "crawler")


def get_cache_config(config: Optional[Dict] = None) -> Dict:
    """Get cache settings (backend, path, max_entries, response_ttl, sweep_interval)."""
    return _section(config, "cache")
