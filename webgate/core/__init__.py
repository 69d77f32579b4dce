"""Core: configuration and the exception hierarchy."""

from .config import AppConfig, ConfigManager
from .exceptions import GatewayError

__all__ = ["AppConfig", "ConfigManager", "GatewayError"]
