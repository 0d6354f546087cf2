from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any, Mapping

from pydantic import ValidationError

from .models import Settings
from .sources import env_overrides, load_from_toml

logger = logging.getLogger(__name__)


class ConfigManager:
    """Loads settings from TOML + environment and hands out the current snapshot.

    Precedence, lowest first: model defaults, the TOML file named by
    ``MEDIAVAULT_CONFIG`` (``config.toml`` when unset), upper-cased environment
    variables, explicit overrides.
    """

    def __init__(self, *, env_var: str = "MEDIAVAULT_CONFIG", default_file: str = "config.toml") -> None:
        self._env_var = env_var
        self._default_file = default_file
        self._lock = RLock()
        self._settings = self._load()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config_path(self) -> Path:
        return Path(os.environ.get(self._env_var, self._default_file))

    def reload(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        with self._lock:
            self._settings = self._load(overrides)
            return self._settings

    def replace(self, new_settings: Settings) -> Settings:
        with self._lock:
            self._settings = new_settings
            return self._settings

    def as_dict(self) -> dict[str, Any]:
        with self._lock:
            data = self._settings.model_dump()
        for secret in ("jwt_secret", "s3_secret_key", "locked_reference_secret"):
            if data.get(secret):
                data[secret] = "***"
        return data

    def _load(self, overrides: Mapping[str, Any] | None = None) -> Settings:
        path = self.config_path
        data = load_from_toml(path)
        data.update(env_overrides(Settings, os.environ))
        if overrides:
            data.update(overrides)
        try:
            return Settings(**data)
        except ValidationError:
            logger.error(f"Invalid configuration (file: {path})")
            raise
