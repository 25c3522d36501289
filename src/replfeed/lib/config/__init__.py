"""Configuration loading."""

from replfeed.lib.config.settings import ReplfeedConfig, load_config

__all__ = ["ReplfeedConfig", "load_config"]
