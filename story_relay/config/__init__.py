"""Configuration loading and schema."""

from story_relay.config.loader import load_config
from story_relay.config.schema import AppConfig, AppConfigRoot

__all__ = ["AppConfig", "AppConfigRoot", "load_config"]
