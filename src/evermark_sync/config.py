"""Configuration loader for the Evermark voting sync service."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"


@dataclass
class ChainConfig:
    rpc_url: str
    voting_contract_address: str
    request_timeout_seconds: float = 30.0
    max_log_range_splits: int = 24


@dataclass
class SyncConfig:
    default_block_range: int = 1000
    # Voter counts scan the full history by default
    voter_scan_from_block: int = 0
    stale_after_minutes: int = 5
    stale_batch_limit: int = 50


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class DatabaseConfig:
    path: str


@dataclass
class Config:
    chain: ChainConfig
    database: DatabaseConfig
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(raw: dict, name: str, cls, required: bool = True):
    values = raw.get(name)
    if values is None:
        if required:
            raise ValueError(f"Missing config section: {name}")
        return cls()
    try:
        return cls(**values)
    except TypeError as e:
        raise ValueError(f"Invalid config section '{name}': {e}") from e


def _apply_env_overrides(config: Config) -> Config:
    """Deploy-time secrets and paths take precedence over the file."""
    if os.getenv("EVERMARK_RPC_URL"):
        config.chain.rpc_url = os.environ["EVERMARK_RPC_URL"]
    if os.getenv("EVERMARK_VOTING_ADDRESS"):
        config.chain.voting_contract_address = os.environ["EVERMARK_VOTING_ADDRESS"]
    if os.getenv("EVERMARK_DB_PATH"):
        config.database.path = os.environ["EVERMARK_DB_PATH"]
    if os.getenv("EVERMARK_LOG_LEVEL"):
        config.logging.level = os.environ["EVERMARK_LOG_LEVEL"]
    return config


def default_config_path() -> str:
    return os.getenv("EVERMARK_SYNC_CONFIG", DEFAULT_CONFIG_PATH)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file."""
    config_path = Path(config_path or default_config_path())

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    config = Config(
        chain=_section(raw, "chain", ChainConfig),
        database=_section(raw, "database", DatabaseConfig),
        sync=_section(raw, "sync", SyncConfig, required=False),
        logging=_section(raw, "logging", LoggingConfig, required=False),
    )
    return _apply_env_overrides(config)
