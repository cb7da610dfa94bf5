"""Tests for configuration loading and validation."""

import json
from dataclasses import replace

import pytest

from oracles.config import (
    CoordinatorConfig,
    config_from_env,
    config_from_mapping,
    load_config,
)

APP = "0x" + "ab" * 20
DATA = "0x" + "cd" * 20


@pytest.fixture
def deployment_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "localhost": {
            "url": "http://localhost:8545",
            "appAddress": APP,
            "dataAddress": DATA,
        },
        "staging": {
            "url": "http://staging:8545",
            "appAddress": APP,
            "oracles": {"poolSize": 30, "accountOffset": 5, "pollInterval": 0.5},
        },
    }))
    return str(path)


def test_defaults():
    config = CoordinatorConfig()
    assert config.pool_size == 20
    assert config.account_offset == 20
    assert config.num_index_categories == 10
    assert config.gas_limit == 1_000_000
    assert config.from_block == 0
    assert config.port == 3000


def test_load_deployment_file(deployment_file):
    config = load_config(deployment_file, environ={})
    assert config.rpc_url == "http://localhost:8545"
    assert config.app_address == APP
    assert config.data_address == DATA
    assert config.gateway == "web3"


def test_load_named_network_with_oracle_section(deployment_file):
    config = load_config(deployment_file, network="staging", environ={})
    assert config.rpc_url == "http://staging:8545"
    assert config.pool_size == 30
    assert config.account_offset == 5
    assert config.poll_interval == 0.5


def test_missing_network(deployment_file):
    with pytest.raises(ValueError, match="Network 'mainnet'"):
        load_config(deployment_file, network="mainnet", environ={})


def test_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_config(str(tmp_path / "nope.json"), environ={})


def test_environment_overrides_file(deployment_file):
    env = {"ORACLE_POOL_SIZE": "7", "ORACLE_SEED": "3", "ORACLE_POLL_INTERVAL": "0.25"}
    config = load_config(deployment_file, environ=env)
    assert config.pool_size == 7
    assert config.seed == 3
    assert config.poll_interval == 0.25


def test_environment_only():
    config = config_from_env(environ={"ORACLE_GATEWAY": "memory", "ORACLE_PORT": "8080"})
    assert config.gateway == "memory"
    assert config.port == 8080
    assert config.seed is None


def test_unknown_keys_rejected():
    with pytest.raises(ValueError, match="Unknown config keys"):
        config_from_mapping({"url": "http://x", "poolsize": 3})


def test_bad_integer_rejected():
    with pytest.raises(ValueError, match="pool_size must be an integer"):
        config_from_mapping({"poolSize": "many"})


def test_web3_requires_app_address():
    with pytest.raises(ValueError, match="app_address"):
        load_config(environ={})
    assert load_config(environ={"ORACLE_GATEWAY": "memory"}).gateway == "memory"


def test_validate_can_be_deferred():
    config = load_config(environ={}, validate=False)
    assert config.app_address == ""


@pytest.mark.parametrize("field, value", [
    ("pool_size", -1),
    ("account_offset", -5),
    ("from_block", -1),
    ("num_index_categories", 2),
    ("gas_limit", 0),
    ("max_workers", 0),
    ("poll_interval", 0),
    ("max_backoff", float("inf")),
    ("port", 0),
    ("port", 70000),
])
def test_validate_rejects(field, value):
    config = replace(CoordinatorConfig(gateway="memory"), **{field: value})
    with pytest.raises(ValueError, match=field):
        config.validate()


def test_validate_returns_self():
    config = CoordinatorConfig(gateway="memory")
    assert config.validate() is config
