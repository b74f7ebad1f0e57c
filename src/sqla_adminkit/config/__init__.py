"""Configuration module for sqla-adminkit."""

from __future__ import annotations

from sqla_adminkit.config._config import AdminConfig, configure, get_global_config

__all__ = ["AdminConfig", "configure", "get_global_config"]
