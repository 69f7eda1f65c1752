"""
Configuration loading.

Pipeline settings live in config/pipeline.yaml (versioned); the API key lives
in the environment, usually via a non-versioned .env file:

    RATEBEER_API_KEY=...

Usage:
    from brewery_ingest.config import load_config, load_api_key

    config = load_config()
    api_key = load_api_key()   # raises ConfigError if absent
"""

import copy
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

from brewery_ingest.ingest.errors import ConfigError

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "pipeline.yaml"
API_KEY_ENV = "RATEBEER_API_KEY"

DEFAULTS = {
    "listing": {
        "base_url": "https://www.ratebeer.com",
        "regions_path": "/breweries/",
        "region_selector": "#default a",
        "region_limit": 51,
        "region_pattern": r"/breweries/(?P<slug>[^/]+)/(?P<id>\d+)/",
        "brewer_container": "#brewerTable",
        "brewer_row": "tr",
        "brewer_pattern": r"/brewers/[^/]+/(?P<id>\d+)/",
        "timeout": 20,
    },
    "api": {
        "url": "https://api.r8.beer/v1/api/graphql/",
        "query_name": "beersByBrewer",
        "page_size": 1000,
        "min_interval": 1.0,
        "timeout": 30,
    },
    "output": {
        "backup_dir": ".",
        "entity_kind": "Beers",
    },
    "store": {
        "path": "data/warehouse/beers.duckdb",
        "collection": "beers",
    },
    "metrics": {
        "path": "data/metrics/runs.duckdb",
    },
    "logging": {
        "log_dir": "data/logs",
    },
    # Title-casing "washington-dc" gives "Washington Dc"
    "name_overrides": {
        "Washington Dc": "Washington DC",
    },
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None) -> dict:
    """
    Load pipeline config from YAML, merged over the built-in defaults.

    Args:
        path: Config file (default: config/pipeline.yaml at the project root)

    Returns:
        Plain dict with sections listing, api, output, store, metrics,
        logging, name_overrides
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if path:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.warning(f"Config not found at {config_path}, using defaults")
        return copy.deepcopy(DEFAULTS)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")

    logger.debug(f"Loaded config from {config_path}")
    return _merge(DEFAULTS, loaded)


def load_api_key(env_file: Optional[Path] = None) -> str:
    """
    Read the API key from the environment (after loading .env).

    Raises:
        ConfigError: if the key is missing or blank
    """
    load_dotenv(dotenv_path=env_file)
    api_key = os.getenv(API_KEY_ENV, "").strip()
    if not api_key:
        raise ConfigError(
            f"{API_KEY_ENV} is not set. Add it to .env or the environment."
        )
    return api_key
