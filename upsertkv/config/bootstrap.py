##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Build stores, engines, and logging from configuration.

The `store` section of a configuration names the store type and holds the keyword
arguments for that store's constructor, e.g. `db_path` for SQLite or `url` for Redis.
"""

import logging
from typing import Dict, Union

from upsertkv.backends.backend_factory import store_factory
from upsertkv.backends.store_base import StoreBase
from upsertkv.config import Config
from upsertkv.exceptions import BackendNotSupportedError, ConfigurationError
from upsertkv.log_formatter import setup_logging
from upsertkv.upsert.engine import UpsertEngine


LOG = logging.getLogger(__name__)


def get_store(config: Union[Config, Dict]) -> StoreBase:
    """
    Create the store described by a configuration.

    Args:
        config: A [`Config`][config.Config] object or a configuration dictionary
            with a `store` section.

    Returns:
        A new store instance.

    Raises:
        ConfigurationError: If the store type is unknown or its settings don't fit the store.
    """
    config_dict = config.to_dict() if isinstance(config, Config) else config
    store_settings = dict(config_dict.get("store") or {})
    store_type = store_settings.pop("type", "sqlite")

    LOG.debug(f"Creating '{store_type}' store with settings {store_settings}.")
    try:
        return store_factory.create(store_type, store_settings)
    except BackendNotSupportedError as exc:
        raise ConfigurationError(str(exc)) from exc
    except ValueError as exc:
        raise ConfigurationError(f"Invalid settings for the '{store_type}' store: {exc}") from exc


def get_engine(config: Union[Config, Dict]) -> UpsertEngine:
    """
    Create an [`UpsertEngine`][upsert.engine.UpsertEngine] over the configured store.

    Args:
        config: A [`Config`][config.Config] object or a configuration dictionary.

    Returns:
        An engine bound to a new store.
    """
    return UpsertEngine(get_store(config))


def configure_logging(config: Union[Config, Dict], logger_name: str = "upsertkv"):
    """
    Apply the `logging` section of a configuration to the upsertkv logger.

    Args:
        config: A [`Config`][config.Config] object or a configuration dictionary.
        logger_name: The logger to configure.
    """
    config_dict = config.to_dict() if isinstance(config, Config) else config
    logging_settings = config_dict.get("logging") or {}
    setup_logging(
        logger=logging.getLogger(logger_name),
        log_level=logging_settings.get("level", "INFO"),
        colors=logging_settings.get("colors", True),
    )
