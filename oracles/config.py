"""
Coordinator configuration.

Settings come from three layers, later ones winning:

  1. dataclass defaults
  2. the deployment JSON written by the migration script, keyed by network::

         {"localhost": {"url": "http://localhost:7545",
                        "appAddress": "0x...", "dataAddress": "0x...",
                        "oracles": {"poolSize": 20, ...}}}

  3. ``ORACLE_*`` environment variables
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from ledger.gateway import DEFAULT_GAS_LIMIT

# JSON key (camelCase, as the deployment file uses) -> dataclass field
_JSON_KEYS = {
    "url": "rpc_url",
    "appAddress": "app_address",
    "dataAddress": "data_address",
    "abiPath": "abi_path",
    "gateway": "gateway",
    "poolSize": "pool_size",
    "accountOffset": "account_offset",
    "numIndexCategories": "num_index_categories",
    "gasLimit": "gas_limit",
    "fromBlock": "from_block",
    "pollInterval": "poll_interval",
    "maxBackoff": "max_backoff",
    "maxWorkers": "max_workers",
    "seed": "seed",
    "host": "host",
    "port": "port",
}

_ENV_PREFIX = "ORACLE_"


@dataclass(frozen=True)
class CoordinatorConfig:
    rpc_url: str = "http://localhost:7545"
    app_address: str = ""
    data_address: str = ""
    abi_path: str = "build/contracts/FlightSuretyApp.json"
    gateway: str = "web3"
    pool_size: int = 20
    account_offset: int = 20
    num_index_categories: int = 10
    gas_limit: int = DEFAULT_GAS_LIMIT
    from_block: int = 0
    poll_interval: float = 1.0
    max_backoff: float = 30.0
    max_workers: int = 32
    seed: Optional[int] = None
    host: str = "0.0.0.0"
    port: int = 3000

    def validate(self) -> "CoordinatorConfig":
        """Raise ``ValueError`` on the first invalid setting; return self."""
        for name in ("pool_size", "account_offset", "from_block"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be an integer >= 0, got {value!r}")
        for name in ("num_index_categories", "gas_limit", "max_workers"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be an integer > 0, got {value!r}")
        if self.num_index_categories < 3:
            raise ValueError(
                f"num_index_categories must be >= 3, got {self.num_index_categories}"
            )
        for name in ("poll_interval", "max_backoff"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in 1..65535, got {self.port}")
        if self.gateway == "web3" and not self.app_address:
            raise ValueError("app_address is required for the web3 gateway")
        return self


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw JSON / environment value to the field's type."""
    default = getattr(CoordinatorConfig, name)
    if value is None or value == "":
        return None if name == "seed" else default
    if name == "seed" or isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be a number, got {value!r}")
    return str(value)


def config_from_mapping(section: dict, base: Optional[CoordinatorConfig] = None) -> CoordinatorConfig:
    """Overlay one network section of the deployment JSON on *base*."""
    base = base or CoordinatorConfig()
    flat = dict(section)
    flat.update(flat.pop("oracles", None) or {})

    unknown = set(flat) - set(_JSON_KEYS)
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    updates = {_JSON_KEYS[k]: _coerce(_JSON_KEYS[k], v) for k, v in flat.items()}
    return replace(base, **updates)


def config_from_env(base: Optional[CoordinatorConfig] = None, environ=None) -> CoordinatorConfig:
    """Apply ``ORACLE_<FIELD>`` overrides, e.g. ``ORACLE_POOL_SIZE=30``."""
    base = base or CoordinatorConfig()
    environ = os.environ if environ is None else environ
    updates = {}
    for f in fields(CoordinatorConfig):
        key = _ENV_PREFIX + f.name.upper()
        if key in environ:
            updates[f.name] = _coerce(f.name, environ[key])
    return replace(base, **updates)


def load_config(
    path: Optional[str] = None,
    network: str = "localhost",
    environ=None,
    validate: bool = True,
) -> CoordinatorConfig:
    """Build a config from *path* (optional) and the environment.

    Pass ``validate=False`` when further overrides (CLI flags) are applied
    before the config is used.
    """
    config = CoordinatorConfig()
    if path is not None:
        with open(path) as f:
            data = json.load(f)
        if network not in data:
            raise ValueError(
                f"Network '{network}' not in {path}. Available: {sorted(data)}"
            )
        config = config_from_mapping(data[network], config)
    config = config_from_env(config, environ)
    return config.validate() if validate else config
