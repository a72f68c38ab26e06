"""Configuration loading."""

from .settings import (
    ApplicationSettings,
    ProxySettings,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "ApplicationSettings",
    "ProxySettings",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
