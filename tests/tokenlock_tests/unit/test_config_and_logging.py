"""
Tests for ConfigManager layering and structured logging setup.
"""

import json
import logging
import os

import pytest
import yaml

from tokenlock.config_manager import ConfigManager, ConfigurationError, Environment, LoggingConfig
from tokenlock.core.logging_config import setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in [k for k in os.environ if k.startswith("TOKENLOCK_")]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def _write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))


def test_bundled_defaults():
    config = ConfigManager(environment="development")
    assert config.environment == Environment.DEVELOPMENT
    assert config.ledger.delegation_namespace == "tokenlock.vesting"
    assert config.token.symbol == "VEST"
    assert config.logging.level == "DEBUG"
    assert config.get("storage.state_file") == "tokenlock_state.json"


def test_environment_file_overrides_default(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    _write_yaml(config_dir / "default.yaml", {"ledger": {"delegation_namespace": "base.eth"}})
    _write_yaml(config_dir / "staging.yaml", {"ledger": {"delegation_namespace": "staging.eth"}})

    assert ConfigManager("staging", str(config_dir)).ledger.delegation_namespace == "staging.eth"
    assert ConfigManager("dev", str(config_dir)).ledger.delegation_namespace == "base.eth"


def test_env_variables_and_cli_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("TOKENLOCK_LEDGER_DELEGATION_NAMESPACE", "env.eth")
    monkeypatch.setenv("TOKENLOCK_TOKEN_DECIMALS", "6")
    monkeypatch.setenv("TOKENLOCK_STORAGE_STATE_FILE", "custom.json")

    config = ConfigManager("development", str(tmp_path))
    assert config.ledger.delegation_namespace == "env.eth"
    assert config.token.decimals == 6
    assert config.storage.state_file == "custom.json"

    config = ConfigManager(
        "development", str(tmp_path), cli_overrides={"ledger.delegation_namespace": "cli.eth"}
    )
    assert config.ledger.delegation_namespace == "cli.eth"


def test_env_values_for_string_settings_stay_strings(monkeypatch, tmp_path):
    monkeypatch.setenv("TOKENLOCK_LEDGER_DELEGATION_NAMESPACE", "2024")
    monkeypatch.setenv("TOKENLOCK_TOKEN_SYMBOL", "ON")
    monkeypatch.setenv("TOKENLOCK_TOKEN_NAME", "null")
    monkeypatch.setenv("TOKENLOCK_LOGGING_ENABLE_FILE", "yes")

    config = ConfigManager("development", str(tmp_path))
    assert config.ledger.delegation_namespace == "2024"
    assert config.token.symbol == "ON"
    assert config.token.name == "null"
    assert config.logging.enable_file is True


def test_mistyped_env_value_rejected(monkeypatch, tmp_path):
    monkeypatch.setenv("TOKENLOCK_TOKEN_DECIMALS", "eighteen")
    with pytest.raises(ConfigurationError, match="token.decimals"):
        ConfigManager("development", str(tmp_path))


def test_environment_from_variable(monkeypatch, tmp_path):
    monkeypatch.setenv("TOKENLOCK_ENVIRONMENT", "prod")
    assert ConfigManager(config_dir=str(tmp_path)).environment == Environment.PRODUCTION


@pytest.mark.parametrize(
    "overrides",
    [
        {"logging.level": "LOUD"},
        {"token.decimals": 30},
        {"ledger.delegation_namespace": ""},
        {"ledger.unknown_key": 1},
        {"ledger.delegation_namespace": 2024},
        {"token.symbol": True},
        {"token.decimals": True},
        {"logging.enable_console": "sometimes"},
    ],
)
def test_invalid_configuration_rejected(tmp_path, overrides):
    with pytest.raises(ConfigurationError):
        ConfigManager("development", str(tmp_path), cli_overrides=overrides)


def test_mistyped_yaml_value_rejected(tmp_path):
    _write_yaml(tmp_path / "default.yaml", {"ledger": {"delegation_namespace": 2024}})
    with pytest.raises(ConfigurationError, match="delegation_namespace"):
        ConfigManager("development", str(tmp_path))


def test_malformed_yaml_rejected(tmp_path):
    (tmp_path / "default.yaml").write_text("ledger: [unclosed")
    with pytest.raises(ConfigurationError):
        ConfigManager("development", str(tmp_path))


def test_setup_logging_writes_json(tmp_path):
    log_file = tmp_path / "logs" / "tokenlock.json"
    settings = LoggingConfig(level="info", log_file=str(log_file), enable_console=False, enable_file=True)
    logger = setup_logging(settings, environment="testing", name="tokenlock_test_logging")
    logger.info("Ledger deployed", extra={"event": "vesting.deployed", "ledger": "0xabc"})
    for handler in logger.handlers:
        handler.flush()

    record = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert record["message"] == "Ledger deployed"
    assert record["event"] == "vesting.deployed"
    assert record["ledger"] == "0xabc"
    assert record["environment"] == "testing"
    assert record["service"] == "tokenlock_test_logging"
    assert record["level"] == "info"
    assert record["origin"].startswith("test_config_and_logging:test_setup_logging_writes_json:")

    setup_logging(LoggingConfig(enable_console=False), environment="testing", name="tokenlock_test_logging")
    assert logging.getLogger("tokenlock_test_logging").handlers == []
