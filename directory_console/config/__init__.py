"""Configuration module for the directory console."""
from .settings import ConsoleConfig, load_settings

__all__ = ["ConsoleConfig", "load_settings"]
