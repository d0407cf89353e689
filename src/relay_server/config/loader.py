"""ConfigLoader — one YAML file per environment, env vars and kwargs on top."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from relay_server.config.settings import ENV_PREFIX, Settings

_CONFIG_ROOT = Path(__file__).resolve().parent
_DEFAULT_ENV = "dev"


class ConfigLoader:
    """Assemble Settings from ``config/<env>/settings.yaml`` and the environment.

    Priority, highest first: explicit overrides, ``RELAY_*`` env vars,
    the environment's YAML file, field defaults.
    """

    @staticmethod
    def current_env() -> str:
        """Name of the active environment (``RELAY_ENV``, default ``dev``)."""
        return os.environ.get(f"{ENV_PREFIX}ENV", _DEFAULT_ENV)

    @staticmethod
    def _load_yaml(env: str) -> dict[str, Any]:
        path = _CONFIG_ROOT / env / "settings.yaml"
        if not path.exists():
            logger.debug(f"No settings file for env '{env}', using defaults")
            return {}
        with path.open(encoding="utf-8") as config_file:
            data = yaml.safe_load(config_file)
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: expected a mapping at top level")
            return {}
        return data

    @staticmethod
    def _shadowed_by_env(key: str) -> bool:
        return f"{ENV_PREFIX}{key.upper()}" in os.environ

    @staticmethod
    def load_settings(env: str | None = None, **overrides: Any) -> Settings:
        """Build Settings for ``env`` (or the active environment).

        YAML keys that also have an env var set are dropped before
        construction; pydantic-settings ranks init kwargs above env vars,
        so passing them through would let the file beat the environment.
        """
        yaml_values = ConfigLoader._load_yaml(env or ConfigLoader.current_env())
        from_file = {
            key: value
            for key, value in yaml_values.items()
            if not ConfigLoader._shadowed_by_env(key)
        }
        return Settings(**{**from_file, **overrides})
