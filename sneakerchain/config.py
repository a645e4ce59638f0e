"""
SneakerChain Configuration System

Unified configuration management with YAML files, environment variables,
validation, and runtime updates.

Configuration Sources (in order of precedence):
    1. Environment variables (SNEAKERCHAIN_*)
    2. Runtime overrides
    3. User config file (~/.sneakerchain/config.yaml)
    4. Project config file (./sneakerchain.yaml)
    5. Default values

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from sneakerchain.hardening import Validators
from sneakerchain.observability import RegistryLayer, get_logger

T = TypeVar("T")

logger = get_logger("config", RegistryLayer.CONFIG)


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


def _is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(Validators.ADDRESS_PATTERN.match(value.lower()))


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[T, T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])

        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if isinstance(value, str) and not isinstance(self.default, str):
            value = self._coerce(value)
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        """Drop any runtime override."""
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        elif target_type == list:
            return value.split(",")  # type: ignore
        else:
            return value  # type: ignore

    def on_change(self, callback: Callable[[T, T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class LedgerConfig:
    """Configuration for the ownership ledger."""
    contract_address: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="0x0000000000000000000000000000000000005ea4",
        env_var="SNEAKERCHAIN_CONTRACT_ADDRESS",
        description="Address of the registry itself; transfers to it are rejected",
        validator=_is_address,
    ))
    token_name: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="SneakerChain",
        env_var="SNEAKERCHAIN_TOKEN_NAME",
        description="Collection name reported by name()",
        validator=lambda x: bool(x),
    ))
    token_symbol: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="SNKR",
        env_var="SNEAKERCHAIN_TOKEN_SYMBOL",
        description="Collection symbol reported by symbol()",
        validator=lambda x: bool(x),
    ))


@dataclass
class MetadataConfig:
    """Configuration for metadata resolution."""
    default_transport: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="https",
        env_var="SNEAKERCHAIN_METADATA_TRANSPORT",
        description="Transport used when the caller has no preference",
        validator=lambda x: bool(x) and "://" not in x,
    ))
    base_uri: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="meta.sneakerchain.io/sneaker",
        env_var="SNEAKERCHAIN_METADATA_BASE_URI",
        description="Host and path prefix served by the static metadata provider",
        validator=lambda x: bool(x),
    ))
    buffer_words: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=4,
        env_var="SNEAKERCHAIN_METADATA_WORDS",
        description="Number of words in a metadata buffer",
        validator=lambda x: 0 < x <= 64,
    ))
    word_size: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=32,
        env_var="SNEAKERCHAIN_METADATA_WORD_SIZE",
        description="Bytes per metadata word",
        validator=lambda x: 0 < x <= 256,
    ))


@dataclass
class StorageConfig:
    """Configuration for state persistence."""
    state_path: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="sneakerchain-state.json",
        env_var="SNEAKERCHAIN_STATE_PATH",
        description="Path of the persisted ledger snapshot",
        validator=lambda x: bool(x),
    ))
    state_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="SNEAKERCHAIN_STATE_FORMAT",
        description="Snapshot format (json, yaml)",
        validator=lambda x: x in ("json", "yaml"),
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="SNEAKERCHAIN_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="SNEAKERCHAIN_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class SneakerChainConfig:
    """
    Root configuration for SneakerChain.

    Aggregates all component configurations and provides
    loading/saving functionality.
    """
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = SneakerChainConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[SneakerChainConfig], None]] = []
        self._initialized = True

    @property
    def config(self) -> SneakerChainConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data:
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration file must contain a mapping: {path}")
            self._apply_dict(data)
            self._config_paths.append(path)
            logger.debug("Loaded configuration", path=str(path))

    def load_defaults(self) -> None:
        """Load default configuration files if they exist."""
        default_paths = [
            Path("sneakerchain.yaml"),
            Path("config/sneakerchain.yaml"),
            Path.home() / ".sneakerchain" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                try:
                    self.load_from_file(path)
                except (ConfigError, yaml.YAMLError) as e:
                    logger.warning("Skipping unreadable configuration file", path=str(path), error=str(e))

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any]) -> None:
            for key, value in values.items():
                if hasattr(config_obj, key):
                    attr = getattr(config_obj, key)
                    if isinstance(attr, ConfigValue):
                        attr.set(value)
                    elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                        apply_to_config(attr, value)

        apply_to_config(self._config, data)

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, "__dataclass_fields__") or part not in obj.__dataclass_fields__:
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("ledger.token_symbol", "KICKS")
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)
        for watcher in self._watchers:
            watcher(self._config)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("metadata.default_transport")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def watch(self, callback: Callable[[SneakerChainConfig], None]) -> None:
        """Register a callback for configuration changes."""
        self._watchers.append(callback)

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        paths = list(self._config_paths)
        self._config_paths = []
        for path in paths:
            if path.exists():
                self.load_from_file(path)

        for watcher in self._watchers:
            watcher(self._config)

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except (TypeError, ValueError) as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> SneakerChainConfig:
    """Get the current SneakerChain configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
