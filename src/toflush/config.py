"""
Configuration loading and management.

This module loads the YAML run configuration handed to a pipeline and exposes
its contents through dot-notation lookups on `Context.config`.
"""

from typing import Any, Dict, Optional
import os

import yaml


class Config:
    """
    A wrapper around a dictionary for managing configuration.

    It provides a `get` method that allows accessing nested values using
    dot-notation (e.g., 'headers.copyright').
    """

    def __init__(self, config_data: Optional[Dict[str, Any]]):
        self._config = config_data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Access a config value using dot notation.

        Example:
            >>> config = Config({'concat': {'path': 'all.txt'}})
            >>> config.get('concat.path')
            'all.txt'
            >>> config.get('concat.separator', '\\n')
            '\\n'

        :param key: The dot-separated key for the desired value.
        :param default: The value to return if the key is not found.
        :return: The configuration value or the default.
        """
        value: Any = self._config
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return default
            value = value[k]
        return value

    def section(self, key: str) -> "Config":
        """
        Returns the mapping under `key` as its own Config.

        A missing or empty key gives an empty Config; a key holding anything
        other than a mapping is rejected with `ValueError`.
        """
        value = self.get(key)
        if value is None:
            return Config({})
        if not isinstance(value, dict):
            raise ValueError(
                f"Configuration section '{key}' must be a mapping, got {type(value).__name__}."
            )
        return Config(value)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._config)

    def __repr__(self) -> str:
        return f"Config(config_data={self._config})"


def load_config(path: Optional[str]) -> Config:
    """
    Loads a YAML configuration file from the given path.

    If the path is None or does not exist, it returns an empty Config object.
    A file whose top level is not a mapping is rejected with `ValueError`.

    :param path: The path to the YAML configuration file.
    :return: A Config object with the loaded data.
    """
    if not path or not os.path.exists(path):
        return Config({})

    with open(path, "r") as f:
        config_data = yaml.safe_load(f)

    if config_data is not None and not isinstance(config_data, dict):
        raise ValueError(
            f"Configuration file '{path}' must contain a mapping at the top level, "
            f"got {type(config_data).__name__}."
        )

    return Config(config_data)
