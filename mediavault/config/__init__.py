from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from .manager import ConfigManager
from .models import Settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "as_dict",
    "override",
]

_manager = ConfigManager()


def get_settings() -> Settings:
    return _manager.settings


def reload_settings(**overrides: Any) -> Settings:
    return _manager.reload(overrides=overrides or None)


def as_dict() -> dict[str, Any]:
    return _manager.as_dict()


@contextmanager
def override(**values: Any) -> Generator[Settings, None, None]:
    """Temporarily swap in settings with ``values`` applied (used by tests)."""
    previous = _manager.settings
    try:
        yield _manager.reload(overrides=values)
    finally:
        _manager.replace(previous)
