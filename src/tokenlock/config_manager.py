"""
tokenlock configuration

Settings are assembled from layers, later layers winning:
1. Dataclass defaults below
2. ``default.yaml`` (or ``.json``) in the config directory
3. ``<environment>.yaml`` (or ``.json``)
4. ``TOKENLOCK_<SECTION>_<KEY>`` environment variables, ``.env`` included
5. Explicit overrides such as ``{"ledger.delegation_namespace": "x.eth"}``

The environment comes from the constructor or ``TOKENLOCK_ENVIRONMENT``.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "config"
ENV_PREFIX = "TOKENLOCK_"


class ConfigurationError(ValueError):
    """Raised when configuration is missing or invalid."""


class Environment(Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, name: Optional[str]) -> "Environment":
        """Accept full names and the usual short forms; unknown names mean development."""
        aliases = {"dev": cls.DEVELOPMENT, "stage": cls.STAGING, "prod": cls.PRODUCTION}
        key = (name or "").strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            return cls.DEVELOPMENT


@dataclass
class LedgerConfig:
    """Namespace under which every new ledger registers its beneficiary."""
    delegation_namespace: str = "tokenlock.vesting"

    def validate(self):
        if not self.delegation_namespace.strip():
            raise ConfigurationError("ledger.delegation_namespace cannot be empty")


@dataclass
class TokenConfig:
    """Defaults for tokens created by `tokenlock init`"""
    name: str = "Vesting Token"
    symbol: str = "VEST"
    decimals: int = 18

    def validate(self):
        if not self.name or not self.symbol:
            raise ConfigurationError("token.name and token.symbol are required")
        if not isinstance(self.decimals, int) or not 0 <= self.decimals <= 18:
            raise ConfigurationError(f"token.decimals must be 0-18, got {self.decimals!r}")


@dataclass
class StorageConfig:
    state_file: str = "tokenlock_state.json"

    def validate(self):
        if not self.state_file:
            raise ConfigurationError("storage.state_file cannot be empty")


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    log_file: str = "logs/tokenlock.json"
    enable_console: bool = True
    enable_file: bool = False

    def validate(self):
        if str(self.level).upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"logging.level {self.level!r} is not a logging level")


SECTIONS = {
    "ledger": LedgerConfig,
    "token": TokenConfig,
    "storage": StorageConfig,
    "logging": LoggingConfig,
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _set_dotted(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    section, _, key = dotted_key.partition(".")
    if not key:
        raise ConfigurationError(f"Override {dotted_key!r} must look like 'section.key'")
    target[section] = dict(target.get(section) or {})
    target[section][key] = value


def _typed_env_value(section_cls: type, setting: str, raw: str) -> Any:
    """
    Convert an environment value for ``section_cls.setting``.

    String settings keep the raw text (so ``ON`` or ``2024`` stay strings);
    other settings are read as a YAML scalar (true/false, numbers).
    """
    declared = {f.name: f.type for f in fields(section_cls)}.get(setting)
    if declared is str or not raw:
        return raw
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _check_field_types(name: str, section: Any) -> None:
    for f in fields(section):
        value = getattr(section, f.name)
        # bool is an int subclass but never a valid count
        if not isinstance(value, f.type) or (f.type is int and isinstance(value, bool)):
            raise ConfigurationError(
                f"{name}.{f.name} must be {f.type.__name__}, got {type(value).__name__} ({value!r})"
            )


class ConfigManager:
    """Effective tokenlock settings, exposed as one dataclass per section."""

    ledger: LedgerConfig
    token: TokenConfig
    storage: StorageConfig
    logging: LoggingConfig

    def __init__(self,
                 environment: Optional[str] = None,
                 config_dir: Optional[str] = None,
                 cli_overrides: Optional[Dict[str, Any]] = None):
        load_dotenv()

        self.environment = Environment.parse(environment or os.getenv(f"{ENV_PREFIX}ENVIRONMENT"))
        self.config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR
        self.cli_overrides = dict(cli_overrides or {})
        self.reload()

    def reload(self):
        """Re-read every layer and rebuild the sections."""
        layers = [
            self._read_file("default"),
            self._read_file(self.environment.value),
            self._env_layer(),
            self._override_layer(),
        ]
        raw: Dict[str, Any] = {}
        for layer in layers:
            raw = _deep_merge(raw, layer)

        for name, section_cls in SECTIONS.items():
            values = raw.get(name) or {}
            known = {f.name for f in fields(section_cls)}
            unknown = sorted(set(values) - known)
            if unknown:
                raise ConfigurationError(f"Unknown {name} setting(s): {', '.join(unknown)}")
            section = section_cls(**values)
            _check_field_types(name, section)
            section.validate()
            setattr(self, name, section)

    def _read_file(self, stem: str) -> Dict[str, Any]:
        for suffix, parse in ((".yaml", yaml.safe_load), (".json", json.load)):
            path = self.config_dir / f"{stem}{suffix}"
            if not path.exists():
                continue
            try:
                with open(path, "r") as f:
                    data = parse(f) or {}
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Could not parse {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigurationError(f"{path} must contain a mapping of sections")
            return data
        return {}

    def _env_layer(self) -> Dict[str, Any]:
        layer: Dict[str, Any] = {}
        for key, raw in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            section, _, setting = key[len(ENV_PREFIX):].lower().partition("_")
            if section in SECTIONS and setting:
                _set_dotted(layer, f"{section}.{setting}", _typed_env_value(SECTIONS[section], setting, raw))
        return layer

    def _override_layer(self) -> Dict[str, Any]:
        layer: Dict[str, Any] = {}
        for dotted_key, value in self.cli_overrides.items():
            _set_dotted(layer, dotted_key, value)
        return layer

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a value by dotted key, e.g. ``config.get("storage.state_file")``."""
        node: Any = self.to_dict()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_section(self, section: str) -> Optional[Dict[str, Any]]:
        return self.to_dict().get(section)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"environment": self.environment.value}
        for name in SECTIONS:
            data[name] = asdict(getattr(self, name))
        return data

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment.value}, config_dir={self.config_dir})"


_config_manager: Optional[ConfigManager] = None


def get_config_manager(
    environment: Optional[str] = None,
    config_dir: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    force_reload: bool = False,
) -> ConfigManager:
    """Return the process-wide ConfigManager, building it on first use."""
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(environment, config_dir, cli_overrides)
    return _config_manager
