"""
Configuration Management for the Gateway
========================================

Split into specialized components:
- ConfigLoader: Handles loading from the JSON file and environment
- ConfigValidator: Validates configuration values
- ConfigConverter: Converts between dictionaries and dataclasses
- ConfigManager: Coordinates loading, validation and persistence

The configuration file is JSON (``config/app.config.json`` unless
``WEBGATE_CONFIG`` points elsewhere). A missing or empty file yields the
defaults.
"""

from __future__ import annotations

import json
import logging
import os
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from webgate.storage.atomic import atomic_write_json

from .exceptions import ConfigLoadError, ConfigurationError, InvalidConfigValueError

DEFAULT_CONFIG_PATH = Path("config") / "app.config.json"
CONFIG_PATH_ENV = "WEBGATE_CONFIG"

WEB_GEMINI_MODELS = ("gemini-3.0-pro", "gemini-2.5-pro", "gemini-2.5-flash")
PROVIDER_IDS = ("gemini-web", "openai-web")
MODES = ("auto", "webai", "native-api")
BROWSERS = ("chrome", "firefox", "edge", "safari", "brave", "opera", "chromium")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class ServerSettings:
    """HTTP listener settings"""

    host: str = "localhost"
    port: int = 9091
    default_mode: str = "auto"


@dataclass
class GeminiSettings:
    """Gemini web provider settings"""

    enabled: bool = True
    browser: str = "chrome"
    cookie_1psid: str | None = None
    cookie_1psidts: str | None = None
    http_proxy: str | None = None
    allow_browser_cookies: bool = False
    debug_save_init_html: bool = False
    retry_without_proxy: bool = False


@dataclass
class OpenAIWebSettings:
    """Hosted OpenAI-compatible provider settings"""

    enabled: bool = False
    base_url: str = "https://api.openai.com"
    api_key: str | None = None


@dataclass
class AppConfig:
    """Root gateway configuration"""

    log_level: str = "INFO"
    server: ServerSettings = field(default_factory=ServerSettings)
    active_provider: str = "gemini-web"
    default_model: str = "gemini-2.5-flash"
    gemini: GeminiSettings = field(default_factory=GeminiSettings)
    openai_web: OpenAIWebSettings = field(default_factory=OpenAIWebSettings)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary"""
        return asdict(self)


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Explicit path first, then ``WEBGATE_CONFIG``, then the default location."""
    if config_path:
        return Path(config_path).expanduser().resolve()
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.cwd() / DEFAULT_CONFIG_PATH).resolve()


# =============================================================================
# ConfigLoader - Handles loading configuration from various sources
# =============================================================================


class ConfigLoader:
    """
    Loads configuration from the JSON file and environment variables.

    Responsibilities:
    - File I/O operations
    - Environment variable parsing
    - Deep merging of configuration sources
    """

    ENV_MAPPINGS: dict[str, tuple[str, ...]] = {
        "LOG_LEVEL": ("log_level",),
        "HOST": ("server", "host"),
        "PORT": ("server", "port"),
        "DEFAULT_MODE": ("server", "default_mode"),
        "ACTIVE_PROVIDER": ("active_provider",),
        "DEFAULT_MODEL": ("default_model",),
        "GEMINI_ENABLED": ("gemini", "enabled"),
        "GEMINI_COOKIE_1PSID": ("gemini", "cookie_1psid"),
        "GEMINI_COOKIE_1PSIDTS": ("gemini", "cookie_1psidts"),
        "GEMINI_HTTP_PROXY": ("gemini", "http_proxy"),
        "OPENAI_WEB_ENABLED": ("openai_web", "enabled"),
        "OPENAI_WEB_BASE_URL": ("openai_web", "base_url"),
        "OPENAI_WEB_API_KEY": ("openai_web", "api_key"),
    }

    def __init__(self, env_prefix: str = "WEBGATE_"):
        self.env_prefix = env_prefix
        self._logger = logging.getLogger("webgate.config.loader")

    def load_from_file(self, path: Path) -> dict[str, Any]:
        """Load configuration from a JSON file; a missing or blank file is empty."""
        if not path.exists():
            self._logger.debug(f"Config file {path} not found, using defaults")
            return {}

        try:
            content = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigLoadError(config_path=str(path), reason=str(e), cause=e)

        if not content:
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigLoadError(config_path=str(path), reason=f"JSON error: {e}", cause=e)

        if not isinstance(data, dict):
            raise ConfigLoadError(config_path=str(path), reason="Top-level value must be an object")
        return data

    def load_from_env(self) -> dict[str, Any]:
        """Load configuration overrides from environment variables"""
        config: dict[str, Any] = {}

        for suffix, config_path in self.ENV_MAPPINGS.items():
            value = os.environ.get(f"{self.env_prefix}{suffix}")
            if value is not None:
                self._set_nested(config, config_path, value)

        return config

    def _set_nested(self, config: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
        """Set a value in a nested dictionary path"""
        current = config
        for key in path[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries"""
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    def diff(self, before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
        """Return the nested keys of ``after`` whose values differ from ``before``."""
        changes: dict[str, Any] = {}

        for key, value in after.items():
            old = before.get(key)
            if isinstance(old, dict) and isinstance(value, dict):
                nested = self.diff(old, value)
                if nested:
                    changes[key] = nested
            elif key not in before or old != value:
                changes[key] = deepcopy(value)

        return changes


# =============================================================================
# ConfigValidator - Validates configuration values
# =============================================================================


class ConfigValidator:
    """
    Validates configuration values.

    Normalizable problems (log level case) are fixed and reported as
    warnings; everything else is an error.
    """

    def __init__(self):
        self._logger = logging.getLogger("webgate.config.validator")

    def validate(self, config: AppConfig) -> tuple[list[str], list[str]]:
        """
        Validate configuration and return warnings and errors.

        Returns:
            Tuple of (warnings, errors)
        """
        warnings: list[str] = []
        errors: list[str] = []

        level = config.log_level.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            warnings.append(f"Invalid log_level: {config.log_level}, defaulting to INFO")
            level = "INFO"
        config.log_level = level

        if not config.server.host:
            errors.append("server.host must not be empty")
        if not 1 <= config.server.port <= 65535:
            errors.append(f"server.port must be between 1 and 65535, got {config.server.port}")
        if config.server.default_mode not in MODES:
            errors.append(
                f"Invalid server.default_mode: {config.server.default_mode}. Must be one of: {MODES}"
            )

        if config.active_provider not in PROVIDER_IDS:
            errors.append(
                f"Invalid active_provider: {config.active_provider}. Must be one of: {PROVIDER_IDS}"
            )
        if not config.default_model:
            errors.append("default_model must not be empty")

        if config.gemini.browser not in BROWSERS:
            errors.append(f"Invalid gemini.browser: {config.gemini.browser}")

        return warnings, errors


# =============================================================================
# ConfigConverter - Converts dictionaries to AppConfig objects
# =============================================================================


class ConfigConverter:
    """Converts configuration dictionaries to AppConfig objects and back"""

    SECTIONS: dict[str, type] = {
        "server": ServerSettings,
        "gemini": GeminiSettings,
        "openai_web": OpenAIWebSettings,
    }

    @staticmethod
    def dict_to_config(config_dict: dict[str, Any]) -> AppConfig:
        """Convert a configuration dictionary to an AppConfig object"""
        top_level = {f.name for f in fields(AppConfig)}
        unknown = sorted(set(config_dict) - top_level)
        if unknown:
            raise ConfigurationError(
                message=f"Unknown configuration keys: {', '.join(unknown)}",
                details={"keys": unknown},
            )

        values: dict[str, Any] = {}
        for key, value in config_dict.items():
            section_cls = ConfigConverter.SECTIONS.get(key)
            if section_cls is not None:
                if not isinstance(value, dict):
                    raise InvalidConfigValueError(key, value, "object")
                values[key] = ConfigConverter._build_section(section_cls, key, value)
            else:
                values[key] = ConfigConverter._coerce(AppConfig, key, key, value)

        return AppConfig(**values)

    @staticmethod
    def config_to_dict(config: AppConfig) -> dict[str, Any]:
        return config.to_dict()

    @staticmethod
    def _build_section(section_cls: type, name: str, data: dict[str, Any]) -> Any:
        known = {f.name for f in fields(section_cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                message=f"Unknown keys in '{name}': {', '.join(unknown)}",
                details={"section": name, "keys": unknown},
            )
        kwargs = {
            key: ConfigConverter._coerce(section_cls, f"{name}.{key}", key, value)
            for key, value in data.items()
        }
        return section_cls(**kwargs)

    @staticmethod
    def _coerce(owner: type, dotted: str, key: str, value: Any) -> Any:
        """Coerce env-style strings onto the declared field type."""
        declared = next(f for f in fields(owner) if f.name == key).type
        declared = str(declared)

        if value is None:
            if "None" in declared:
                return None
            raise InvalidConfigValueError(dotted, value, declared)

        if declared == "bool":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in ("1", "true", "yes", "on"):
                return True
            if isinstance(value, str) and value.strip().lower() in ("0", "false", "no", "off"):
                return False
            raise InvalidConfigValueError(dotted, value, "boolean")

        if declared == "int":
            if isinstance(value, bool):
                raise InvalidConfigValueError(dotted, value, "integer")
            try:
                return int(value)
            except (TypeError, ValueError):
                raise InvalidConfigValueError(dotted, value, "integer")

        if not isinstance(value, str):
            raise InvalidConfigValueError(dotted, value, "string")
        if "None" in declared and not value.strip():
            return None
        return value


# =============================================================================
# ConfigManager - Coordinates configuration loading and management
# =============================================================================


class ConfigManager:
    """
    Configuration manager - coordinates loading, validation, and persistence.

    One instance per runtime controller. ``reload()`` re-reads the file and
    environment; ``save()`` validates and writes atomically.

    The file layer is tracked separately from the merged config so that
    ``WEBGATE_*`` overrides never end up on disk.
    """

    def __init__(self, config_path: str | Path | None = None, env_prefix: str = "WEBGATE_"):
        self._path = resolve_config_path(config_path)
        self._env_prefix = env_prefix
        self._loader = ConfigLoader(env_prefix=env_prefix)
        self._validator = ConfigValidator()
        self._converter = ConfigConverter()
        self._logger = logging.getLogger("webgate.config")
        self._file_config: dict[str, Any] = {}
        self._config: AppConfig = self._load_config()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def config(self) -> AppConfig:
        """Get current configuration"""
        return self._config

    def exists(self) -> bool:
        return self._path.exists()

    def _load_config(self) -> AppConfig:
        """Load configuration from all sources"""
        file_config = self._loader.load_from_file(self._path)
        config = self._build(self._with_env(file_config))
        self._file_config = file_config
        self._logger.debug(f"Loaded configuration from {self._path}")
        return config

    def _with_env(self, file_config: dict[str, Any]) -> dict[str, Any]:
        return self._loader.deep_merge(file_config, self._loader.load_from_env())

    def _build(self, config_dict: dict[str, Any]) -> AppConfig:
        try:
            config = self._converter.dict_to_config(config_dict)
        except ConfigurationError as e:
            raise ConfigLoadError(config_path=str(self._path), reason=e.message, cause=e)
        self._validate_config(config)
        return config

    def _validate_config(self, config: AppConfig) -> None:
        """Validate configuration and raise on errors"""
        warnings, errors = self._validator.validate(config)

        for warning in warnings:
            self._logger.warning(warning)

        if errors:
            raise ConfigurationError(
                message=f"Invalid config file '{self._path}': " + "; ".join(errors),
                details={"errors": errors, "path": str(self._path)},
                suggestions=["Fix the configuration errors listed above"],
            )

    def reload(self) -> AppConfig:
        """Reload configuration from sources"""
        self._config = self._load_config()
        self._logger.info(f"Configuration reloaded from {self._path}")
        return self._config

    def save(self, config: AppConfig) -> AppConfig:
        """
        Validate and persist ``config``, then make it current.

        Only the fields that differ from the current config are patched
        into the file; environment overrides keep precedence afterwards.
        """
        changes = self._loader.diff(
            self._converter.config_to_dict(self._config),
            self._converter.config_to_dict(config),
        )
        file_config = self._loader.deep_merge(self._file_config, changes)
        config = self._build(self._with_env(file_config))

        atomic_write_json(self._path, file_config)
        self._file_config = file_config
        self._config = config
        self._logger.info(f"Configuration saved to {self._path}")
        return config


__all__ = [
    "ServerSettings",
    "GeminiSettings",
    "OpenAIWebSettings",
    "AppConfig",
    "ConfigLoader",
    "ConfigValidator",
    "ConfigConverter",
    "ConfigManager",
    "resolve_config_path",
    "DEFAULT_CONFIG_PATH",
    "WEB_GEMINI_MODELS",
    "PROVIDER_IDS",
]
