##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
This module provides functionality for locating, loading, and validating upsertkv
configuration files and filling in default settings.

A configuration file is a YAML document named `upsertkv.yaml` with two optional
sections:

```yaml
store:
  type: sqlite            # sqlite, memory, json, or redis
  db_path: ~/.upsertkv/upsertkv.db
  busy_timeout: 5.0
logging:
  level: INFO
  colors: true
```
"""
import logging
import os
from copy import deepcopy
from typing import Dict, Optional

import yaml

from upsertkv.config import Config
from upsertkv.exceptions import ConfigurationError
from upsertkv.utils import dict_deep_merge, load_yaml, prefer_incoming


LOG: logging.Logger = logging.getLogger(__name__)

APP_FILENAME: str = "upsertkv.yaml"
CONFIG_ENV_VAR: str = "UPSERTKV_CONFIG"
UPSERTKV_HOME: str = os.path.join(os.path.expanduser("~"), ".upsertkv")

DEFAULT_BUSY_TIMEOUT: float = 5.0
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

STORE_DEFAULTS: Dict[str, Dict] = {
    "sqlite": {"db_path": os.path.join(UPSERTKV_HOME, "upsertkv.db")},
    "memory": {},
    "json": {"path": os.path.join(UPSERTKV_HOME, "upsertkv.json")},
    "redis": {"url": "redis://localhost:6379/0", "prefix": "upsertkv"},
}


def get_default_config() -> Dict:
    """
    Creates the default configuration used when no configuration file exists.

    Returns:
        A configuration dictionary with a local SQLite store and INFO logging.
    """
    return {
        "store": {"type": "sqlite", "busy_timeout": DEFAULT_BUSY_TIMEOUT, **STORE_DEFAULTS["sqlite"]},
        "logging": {"level": "INFO", "colors": True},
    }


def find_config_file(path: str = None) -> Optional[str]:
    """
    Locate the upsertkv configuration file (`upsertkv.yaml`).

    If `path` is given it may point at the file itself or at a directory holding it,
    and no other location is searched. Otherwise the search order is:
      1. The file named by the `UPSERTKV_CONFIG` environment variable.
      2. `upsertkv.yaml` in the current working directory.
      3. `upsertkv.yaml` in `~/.upsertkv`.

    Args:
        path: A specific file or directory to look in.

    Returns:
        The full path to the configuration file if found, otherwise `None`.
    """
    if path is not None:
        candidate = path if os.path.isfile(path) else os.path.join(path, APP_FILENAME)
        return candidate if os.path.isfile(candidate) else None

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        if os.path.isfile(env_path):
            return env_path
        LOG.warning(f"{CONFIG_ENV_VAR} points at '{env_path}', which does not exist.")

    for directory in (os.getcwd(), UPSERTKV_HOME):
        candidate = os.path.join(directory, APP_FILENAME)
        if os.path.isfile(candidate):
            return candidate

    return None


def load_config(filepath: str) -> Optional[Dict]:
    """
    Reads an upsertkv YAML configuration file and returns its contents as a dictionary.

    Args:
        filepath: The path to the YAML configuration file.

    Returns:
        A dictionary containing the contents of the YAML file, or None if the file doesn't exist.

    Raises:
        ConfigurationError: If the file isn't valid YAML or isn't a mapping.
    """
    if not os.path.isfile(filepath):
        LOG.info(f"No app config file at {filepath}")
        return None

    LOG.info(f"Reading app config from file {filepath}")
    try:
        contents = load_yaml(filepath)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Could not parse config file {filepath}: {exc}") from exc

    if contents is None:
        return {}
    if not isinstance(contents, dict):
        raise ConfigurationError(f"Config file {filepath} must contain a mapping at the top level.")
    return contents


def load_defaults(config: Dict):
    """
    Fill in default values for everything the configuration leaves out.

    Store defaults depend on the store type, so a file that switches the type to
    "json" gets a JSON path rather than the SQLite database path.

    Args:
        config: The configuration dictionary to update in place.
    """
    store = config.setdefault("store", {})
    store_type = store.setdefault("type", "sqlite")
    store.setdefault("busy_timeout", DEFAULT_BUSY_TIMEOUT)
    for key, val in STORE_DEFAULTS.get(store_type, {}).items():
        store.setdefault(key, val)

    for key in ("db_path", "path"):
        if isinstance(store.get(key), str) and store[key] != ":memory:":
            store[key] = os.path.expanduser(store[key])

    logging_config = config.setdefault("logging", {})
    for key, val in get_default_config()["logging"].items():
        logging_config.setdefault(key, val)


def validate_config(config: Dict):
    """
    Check the values of a configuration dictionary.

    Args:
        config: A configuration dictionary with defaults already applied.

    Raises:
        ConfigurationError: If any setting is invalid.
    """
    store = config["store"]
    if not isinstance(store["type"], str) or not store["type"]:
        raise ConfigurationError(f"store.type must be a non-empty string, got {store['type']!r}.")

    busy_timeout = store["busy_timeout"]
    if isinstance(busy_timeout, bool) or not isinstance(busy_timeout, (int, float)) or busy_timeout < 0:
        raise ConfigurationError(f"store.busy_timeout must be a non-negative number, got {busy_timeout!r}.")

    level = str(config["logging"]["level"]).upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {level!r}.")


def get_config(path: Optional[str] = None) -> Dict:
    """
    Loads an upsertkv configuration file and returns a dictionary containing the configuration data.

    Values from the file take precedence over the defaults. When no file is found the
    defaults are used as they are.

    Args:
        path: A file or directory to load the configuration from. If `None`,
            the default search locations are used.

    Returns:
        A dictionary containing all the configuration data.

    Raises:
        ConfigurationError: If the configuration file is invalid.
    """
    filepath = find_config_file(path)
    if filepath is None:
        LOG.debug("No upsertkv config file found; using defaults.")
        config = {}
    else:
        config = load_config(filepath) or {}

    config = deepcopy(config)
    if "store" in config and not isinstance(config["store"], dict):
        raise ConfigurationError("The 'store' section of the config must be a mapping.")
    if "logging" in config and not isinstance(config["logging"], dict):
        raise ConfigurationError("The 'logging' section of the config must be a mapping.")

    load_defaults(config)
    validate_config(config)
    return config


def load_app_config(path: Optional[str] = None) -> Config:
    """
    Load the configuration into a [`Config`][config.Config] object.

    Args:
        path: A file or directory to load the configuration from.

    Returns:
        The loaded configuration.
    """
    return Config(get_config(path))


def merge_overrides(config: Dict, overrides: Dict) -> Dict:
    """
    Return a copy of `config` with `overrides` deep-merged on top of it.

    Args:
        config: A configuration dictionary.
        overrides: Values that should win over the ones in `config`.

    Returns:
        The merged configuration.
    """
    merged = deepcopy(config)
    dict_deep_merge(merged, deepcopy(overrides), conflict_handler=prefer_incoming)
    return merged
